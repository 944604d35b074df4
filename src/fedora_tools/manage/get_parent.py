import argparse
import logging
import sys
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path

import requests

import fedora_tools.utility.api as fedoraapi
import fedora_tools.utility.cli as fedoracli
from fedora_tools.utility.config import (
    FedoraConfig,
    FedoraConfigException,
    load_config,
)

LOGGER = logging.getLogger(__name__)

# tried in this order, the first one with a value wins
PARENT_RELATIONSHIPS = ["isMemberOf", "isMemberOfCollection"]


def _configure_logging(args):
    log_fn = datetime.now().strftime("get_parent_%Y_%m_%d_%H_%M.log")
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
        description="Find the collection a Fedora object belongs to"
    )

    parser.add_pid()
    parser.add_config()
    parser.add_logdirectory()

    return parser.parse_args()


def get_related_pids(pid: str, name: str, config: FedoraConfig) -> list:
    predicate = f"{fedoraapi.RELS_EXT_NS}{name}"
    relationships = fedoraapi.get_relationships(pid, predicate, config)
    return fedoraapi.parse_related_pids(relationships, name)


def get_parent(pid: str, config: FedoraConfig) -> str | None:
    """
    return the PID of the object's parent collection from RELS-EXT,
    or None if it has no isMemberOf or isMemberOfCollection relationship
    or the repository could not be asked
    """

    for name in PARENT_RELATIONSHIPS:
        try:
            related = get_related_pids(pid, name, config)
        except requests.RequestException as e:
            LOGGER.error(f"Could not get {name} relationships for {pid}: {e}")
            return None
        except ET.ParseError as e:
            LOGGER.error(f"Relationships of {pid} are not valid XML: {e}")
            return None

        if related:
            LOGGER.info(f"{pid} {name} {related[0]}")
            return related[0]

    LOGGER.warning(f"{pid} has no parent collection")
    return None


def main():
    args = parse_args()
    _configure_logging(args)

    try:
        config = load_config(args.config)
    except FedoraConfigException as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    parent = get_parent(args.pid, config)

    if parent is None:
        print(f"No parent found for {args.pid}", file=sys.stderr)
        sys.exit(1)

    print(parent)


if __name__ == "__main__":
    main()
