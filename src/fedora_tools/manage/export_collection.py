import argparse
import logging
import shutil
import sys
import tempfile
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator

import requests

import fedora_tools.utility.api as fedoraapi
import fedora_tools.utility.cli as fedoracli
from fedora_tools.utility.config import (
    FedoraConfig,
    FedoraConfigException,
    load_config,
)

LOGGER = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class FedoraExportException(Exception):
    pass


@dataclass
class ExportArchive:
    filename: str
    path: Path
    content_type: str = "application/zip"

    @property
    def headers(self) -> dict:
        return {
            "Content-Type": self.content_type,
            "Content-Disposition": f'attachment; filename="{self.filename}"',
        }


def _configure_logging(args):
    log_fn = datetime.now().strftime("export_collection_%Y_%m_%d_%H_%M.log")
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
        description="Export a collection and its members as a zip of serialized objects"
    )

    parser.add_pid(help="PID of the collection object")
    parser.add_export_options()
    parser.add_destination()
    parser.add_config()
    parser.add_logdirectory()

    return parser.parse_args()


def get_member_pids(
    pid: str, config: FedoraConfig, relationship: str = "isMemberOfCollection"
) -> list[str]:
    query = (
        f"select $object from <#ri> "
        f"where $object <{fedoraapi.RELS_EXT_NS}{relationship}> "
        f"<{fedoraapi.FEDORA_URI_PREFIX}{pid}>"
    )
    result = fedoraapi.get_related_objects(query, config)
    if not result.ok:
        LOGGER.error(f"Could not list the members of {pid}")
        return []

    return list(result.objects)


def make_export_directory(pid: str, tmp_root: Path | None = None) -> Path:
    """create a fresh temporary directory holding a folder named for the pid"""
    try:
        tmp_dir = Path(tempfile.mkdtemp(prefix="fedora_export_", dir=tmp_root))
        pid_dir = tmp_dir / pid
        pid_dir.mkdir()
    except OSError as e:
        raise FedoraExportException(
            f"Could not create a temporary directory for {pid}: {e}"
        ) from e

    return pid_dir


def write_object(
    pid: str,
    folder: Path,
    config: FedoraConfig,
    export_format: str = fedoraapi.FOXML_1_1,
    context: str = "migrate",
) -> Path | None:
    try:
        response = fedoraapi.export_object(pid, config, export_format, context)
    except requests.RequestException as e:
        LOGGER.error(f"Export request unsuccessful for {pid}: {e}")
        return None

    extension = fedoraapi.EXPORT_EXTENSIONS.get(export_format, ".xml")
    filepath = folder / f"{pid}{extension}"
    with open(filepath, "wb") as f:
        f.write(response.content)

    return filepath


def archive_directory(folder: Path, archive_path: Path) -> bool:
    """zip a folder, keeping the folder name as the top level of the archive"""
    try:
        with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for file in sorted(folder.rglob("*")):
                zf.write(file, file.relative_to(folder.parent))
    except (OSError, zipfile.BadZipFile) as e:
        LOGGER.error(f"Could not create {archive_path}: {e}")
        return False

    return True


def iter_archive(archive_path: Path, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    with open(archive_path, "rb") as f:
        while chunk := f.read(chunk_size):
            yield chunk


def deliver_archive(archive_path: Path, destination: Path) -> ExportArchive:
    archive = ExportArchive(
        filename=archive_path.name, path=Path(destination) / archive_path.name
    )
    with open(archive.path, "wb") as f:
        for chunk in iter_archive(archive_path):
            f.write(chunk)

    LOGGER.info(f"{archive.filename} saved to {archive.path}")
    return archive


def remove_export_directory(tmp_dir: Path) -> bool:
    try:
        shutil.rmtree(tmp_dir)
    except OSError as e:
        LOGGER.error(f"Could not remove temporary directory {tmp_dir}: {e}")
        return False

    return True


def export_collection(
    pid: str,
    config: FedoraConfig,
    destination: Path,
    relationship: str = "isMemberOfCollection",
    export_format: str = fedoraapi.FOXML_1_1,
    context: str = "migrate",
    tmp_root: Path | None = None,
) -> ExportArchive | None:
    """
    export a collection object and its members into <destination>/<pid>.zip

    a failure to create the temporary directory raises FedoraExportException;
    a failure to archive returns None and leaves the temporary files in place
    """

    pid_dir = make_export_directory(pid, tmp_root)
    tmp_dir = pid_dir.parent
    LOGGER.info(f"Exporting {pid} to {pid_dir}")

    write_object(pid, pid_dir, config, export_format, context)

    members = get_member_pids(pid, config, relationship)
    LOGGER.info(f"{pid} has {len(members)} members by {relationship}")
    for member in members:
        write_object(member, pid_dir, config, export_format, context)

    archive_path = tmp_dir / f"{pid}.zip"
    if not archive_directory(pid_dir, archive_path):
        LOGGER.warning(f"No archive for {pid}, temporary files left in {tmp_dir}")
        return None

    archive = deliver_archive(archive_path, destination)
    remove_export_directory(tmp_dir)

    return archive


def main():
    args = parse_args()
    _configure_logging(args)

    try:
        config = load_config(args.config)
        archive = export_collection(
            args.pid,
            config,
            args.destination_folder_path,
            relationship=args.relationship,
            export_format=args.export_format,
            context=args.context,
        )
    except (FedoraConfigException, FedoraExportException) as e:
        LOGGER.error(e)
        print(e, file=sys.stderr)
        sys.exit(1)

    if archive is None:
        print(f"Export of {args.pid} did not produce an archive", file=sys.stderr)
        sys.exit(1)

    print(archive.path)


if __name__ == "__main__":
    main()
