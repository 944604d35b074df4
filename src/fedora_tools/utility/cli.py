import argparse
import re
from pathlib import Path

import fedora_tools.utility.api as fedoraapi


class Parser(argparse.ArgumentParser):
    def add_config(self) -> None:
        self.add_argument(
            "--config",
            "-c",
            type=extant_file,
            required=False,
            help="""Optional. Path to an ini file with a [fedora] section,
            otherwise fedora.ini or the built-in defaults are used""",
        )

    def add_pid(self, help: str = "PID of the repository object") -> None:
        self.add_argument(
            "--pid",
            type=pid,
            required=True,
            help=help,
        )

    CWD = Path(".")

    def add_logdirectory(self, dir: Path = CWD) -> None:
        self.add_argument(
            "--log_folder",
            type=extant_dir,
            help="""Optional. Designate where to save the log file,
            or it will be saved in current directory""",
            default=dir,
        )

    def add_destination(self, dir: Path = CWD) -> None:
        self.add_argument(
            "--destination_folder_path",
            "-dest",
            type=extant_dir,
            help="""Optional. Provide a folder path to save the files
            in the specified folder""",
            default=dir,
        )

    def add_export_options(self) -> None:
        self.add_argument(
            "--relationship",
            type=str,
            default="isMemberOfCollection",
            help="membership relationship used to find the collection members",
        )
        self.add_argument(
            "--format",
            type=str,
            dest="export_format",
            choices=fedoraapi.EXPORT_FORMATS,
            default=fedoraapi.FOXML_1_1,
            help="serialization format of the exported objects",
        )
        self.add_argument(
            "--context",
            type=str,
            choices=fedoraapi.EXPORT_CONTEXTS,
            default="migrate",
            help="export context, migrate keeps datastream content inline",
        )


def extant_dir(p: str) -> Path:
    path = Path(p)
    if not path.is_dir():
        raise argparse.ArgumentTypeError(f"{path} is not a directory")

    return path


def extant_file(p: str) -> Path:
    path = Path(p)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"{path} is not a file")

    return path


def is_valid_id(type: str, pattern: str, id: str) -> str:
    if not re.match(pattern, id):
        raise argparse.ArgumentTypeError(
            f"{id} does not match the expected {type} pattern, {pattern}"
        )
    return id


def pid(id: str) -> str:
    # same rule as islandora_is_valid_pid
    id = id.strip()
    if len(id) > 64:
        raise argparse.ArgumentTypeError(f"{id} is longer than 64 characters")
    return is_valid_id(
        "PID", r"^([A-Za-z0-9]|-|\.)+:(([A-Za-z0-9])|-|\.|~|_|(%[0-9A-F]{2}))+$", id
    )


def namespace(ns: str) -> str:
    return is_valid_id("PID namespace", r"^([A-Za-z0-9]|-|\.)+:?$", ns)
