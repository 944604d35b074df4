import configparser
from dataclasses import dataclass
from pathlib import Path

CONFIG_INI = Path(__file__).parent.parent.parent.parent / "fedora.ini"
SECTION = "fedora"

DEFAULT_PIDS_ALLOWED = "default: demo: changeme: Islandora: ilives: "
DEFAULT_REPOSITORY_URL = "http://localhost:8080/fedora/risearch"
DEFAULT_BASE_URL = "http://localhost:8080/fedora"


class FedoraConfigException(Exception):
    pass


@dataclass(frozen=True)
class FedoraConfig:
    pids_allowed: str = DEFAULT_PIDS_ALLOWED
    repository_url: str = DEFAULT_REPOSITORY_URL
    base_url: str = DEFAULT_BASE_URL
    user: str = ""
    password: str = ""

    @property
    def auth(self) -> tuple[str, str] | None:
        if not self.user:
            return None
        return (self.user, self.password)

    def allowed_namespaces(self) -> list[str]:
        return self.pids_allowed.split()


def load_config(path: Path | None = None) -> FedoraConfig:
    """
    return FedoraConfig built from the [fedora] section of an ini file
    with no path, fall back to fedora.ini at the repository root if present,
    otherwise return the defaults
    """

    if path is None:
        if not CONFIG_INI.is_file():
            return FedoraConfig()
        path = CONFIG_INI

    path = Path(path)
    if not path.exists():
        raise FedoraConfigException(f"Configuration file not found: {str(path)}")

    parser = configparser.ConfigParser(interpolation=None)
    parser.read(path)
    if SECTION not in parser.sections():
        raise FedoraConfigException(
            f"{str(path)} is missing a [{SECTION}] section"
        )

    section = parser[SECTION]
    return FedoraConfig(
        pids_allowed=section.get("fedora_pids_allowed", DEFAULT_PIDS_ALLOWED),
        repository_url=section.get("fedora_repository_url", DEFAULT_REPOSITORY_URL),
        base_url=section.get("fedora_base_url", DEFAULT_BASE_URL).rstrip("/"),
        user=section.get("fedora_user", ""),
        password=section.get("fedora_pass", ""),
    )
