import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable

import fedora_tools.utility.api as fedoraapi
import fedora_tools.utility.cli as fedoracli
from fedora_tools.utility.config import (
    FedoraConfig,
    FedoraConfigException,
    load_config,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_QUERY = Path(__file__).parent / "collection_query.txt"


def _configure_logging(args):
    log_fn = datetime.now().strftime("list_collections_%Y_%m_%d_%H_%M.log")
    log_fpath = Path(args.log_folder) / log_fn
    if not log_fpath.is_file():
        log_fpath.touch()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)8s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        filename=log_fpath,
        encoding="utf-8",
    )


def parse_args() -> argparse.Namespace:
    parser = fedoracli.Parser(
        description="List the collections of a Fedora repository"
    )

    parser.add_config()
    parser.add_logdirectory()
    parser.add_argument(
        "--namespace",
        type=fedoracli.namespace,
        nargs="+",
        dest="namespaces",
        required=False,
        help="""Optional. Only list collections whose PID starts with one of
        these namespaces, otherwise fedora_pids_allowed is used""",
    )
    parser.add_argument(
        "--query_file",
        type=fedoracli.extant_file,
        default=DEFAULT_QUERY,
        help="Optional. itql query file selecting $object and $title",
    )

    return parser.parse_args()


def load_query(query_file: Path) -> str:
    """return the text of a stored query, no parameters are substituted"""
    with open(query_file, "r") as f:
        return f.read()


def limit_collections_by_namespace(
    existing_collections: dict,
    pid_namespaces: Iterable[str] | None = None,
    config: FedoraConfig | None = None,
) -> dict:
    """
    reduce a collection listing to the PIDs starting with an allowed namespace
    no namespaces, or an empty list, falls back to fedora_pids_allowed
    this is a plain prefix test, "is" matches "island:1"
    """

    pid_namespaces = list(pid_namespaces or [])
    if not pid_namespaces:
        pid_namespaces = (config or FedoraConfig()).allowed_namespaces()

    collections = {}
    for pid, title in existing_collections.items():
        if any(pid.startswith(namespace) for namespace in pid_namespaces):
            collections[pid] = title

    return collections


def get_all_collections(
    config: FedoraConfig,
    query_file: Path = DEFAULT_QUERY,
    pid_namespaces: Iterable[str] | None = None,
) -> fedoraapi.QueryResult:
    query = load_query(query_file)
    result = fedoraapi.get_related_objects(query, config)
    if not result.ok:
        return result

    collections = limit_collections_by_namespace(
        result.objects, pid_namespaces, config
    )
    LOGGER.info(
        f"{len(collections)} of {len(result.objects)} collections "
        "are in an allowed namespace"
    )
    return fedoraapi.QueryResult(objects=collections)


def main():
    args = parse_args()
    _configure_logging(args)

    try:
        config = load_config(args.config)
    except FedoraConfigException as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    result = get_all_collections(config, args.query_file, args.namespaces)

    if not result.ok:
        print(result.error, file=sys.stderr)
        sys.exit(1)

    for pid, title in result.objects.items():
        print(f"{pid}\t{title}")


if __name__ == "__main__":
    main()
