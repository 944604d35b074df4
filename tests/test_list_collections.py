from pathlib import Path

import pytest

import fedora_tools.manage.list_collections as list_collections
from fedora_tools.utility.config import FedoraConfig

FIXTURES = Path(__file__).parent / "fixtures"

COLLECTIONS = {
    "caltech:archives": "Caltech Archives",
    "demo:SmileyStuff": "Smiley Stuff",
    "ilives:figures": "Figures",
    "ir:citationCollection": "Citations",
    "islandora:sp_basic_image_collection": "Basic Image Collection",
}


@pytest.fixture
def collections_xml():
    return (FIXTURES / "collections.xml").read_text()


# Argument tests
def test_namespace_argument(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        "sys.argv",
        ["script", "--namespace", "demo:", "ir", "--log_folder", str(tmp_path)],
    )

    args = list_collections.parse_args()

    assert args.namespaces == ["demo:", "ir"]
    assert args.log_folder == tmp_path
    assert args.query_file == list_collections.DEFAULT_QUERY


def test_reject_invalid_namespace(monkeypatch, capsys):
    monkeypatch.setattr("sys.argv", ["script", "--namespace", "@demo@"])

    with pytest.raises(SystemExit):
        list_collections.parse_args()

    assert "@demo@ does not match the expected" in capsys.readouterr().err


# query loader
def test_load_default_query():
    query = list_collections.load_query(list_collections.DEFAULT_QUERY)

    assert query.startswith("select $object $title from <#ri>")
    assert "islandora:collectionCModel" in query


def test_load_query_is_verbatim(tmp_path: Path):
    query_file = tmp_path / "query.txt"
    query_file.write_text("select $object from <#ri> where $x $y $z\n")

    assert (
        list_collections.load_query(query_file)
        == "select $object from <#ri> where $x $y $z\n"
    )


def test_load_missing_query(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        list_collections.load_query(tmp_path / "nonexistant.txt")


# namespace filter
def test_filter_example():
    listing = {"islandora:5": "Demo Set"}

    assert list_collections.limit_collections_by_namespace(listing, {"islandora"}) == {
        "islandora:5": "Demo Set"
    }
    assert list_collections.limit_collections_by_namespace(listing, {"demo"}) == {}


def test_filter_uses_configured_namespaces():
    config = FedoraConfig(pids_allowed="  ir: caltech:  ")

    filtered = list_collections.limit_collections_by_namespace(
        COLLECTIONS, config=config
    )

    assert filtered == {
        "caltech:archives": "Caltech Archives",
        "ir:citationCollection": "Citations",
    }


def test_filter_default_namespaces_are_case_sensitive():
    filtered = list_collections.limit_collections_by_namespace(COLLECTIONS)

    assert filtered == {
        "demo:SmileyStuff": "Smiley Stuff",
        "ilives:figures": "Figures",
    }


def test_filter_is_plain_prefix_match():
    filtered = list_collections.limit_collections_by_namespace(
        {"island:1": "a", "islandora:2": "b", "ir:3": "c"}, ["is"]
    )

    assert filtered == {"island:1": "a", "islandora:2": "b"}


@pytest.mark.parametrize(
    "namespaces", [["demo:"], ["i"], ["ir:", "ilives:", "nothing:"]]
)
def test_filter_output_is_subset(namespaces: list):
    filtered = list_collections.limit_collections_by_namespace(
        COLLECTIONS, namespaces
    )

    assert filtered.items() <= COLLECTIONS.items()
    for pid in filtered:
        assert any(pid.startswith(ns) for ns in namespaces)


@pytest.mark.parametrize("namespaces", [None, [], ()])
def test_filter_empty_namespaces_fall_back_to_config(namespaces):
    config = FedoraConfig(pids_allowed="demo:")

    filtered = list_collections.limit_collections_by_namespace(
        {"demo:1": "a", "ir:2": "b"}, namespaces, config
    )

    assert filtered == {"demo:1": "a"}


def test_filter_does_not_mutate_input():
    listing = dict(COLLECTIONS)

    list_collections.limit_collections_by_namespace(listing, ["demo:"])

    assert listing == COLLECTIONS


# pipeline
def test_get_all_collections(mocker, collections_xml):
    query = mocker.patch(
        "fedora_tools.utility.api.query_resource_index", return_value=collections_xml
    )
    config = FedoraConfig(pids_allowed="islandora: caltech:")

    result = list_collections.get_all_collections(config)

    assert result.ok
    assert result.objects == {
        "caltech:archives": "Caltech Archives",
        "islandora:sp_basic_image_collection": "Basic Image Collection",
    }
    assert "islandora:collectionCModel" in query.call_args.args[0]


def test_get_all_collections_with_explicit_namespaces(mocker, collections_xml):
    mocker.patch(
        "fedora_tools.utility.api.query_resource_index", return_value=collections_xml
    )

    result = list_collections.get_all_collections(
        FedoraConfig(), pid_namespaces=["ir:"]
    )

    assert result.objects == {"ir:citationCollection": "Citations"}


def test_get_all_collections_parse_error(mocker):
    mocker.patch(
        "fedora_tools.utility.api.query_resource_index", return_value="<results"
    )

    result = list_collections.get_all_collections(FedoraConfig())

    assert not result.ok
    assert result.objects == {}


def test_main_prints_listing(mocker, monkeypatch, capsys, tmp_path, collections_xml):
    mocker.patch(
        "fedora_tools.utility.api.query_resource_index", return_value=collections_xml
    )
    mocker.patch(
        "fedora_tools.manage.list_collections.load_config",
        return_value=FedoraConfig(),
    )
    monkeypatch.setattr("sys.argv", ["script", "--log_folder", str(tmp_path)])

    list_collections.main()

    out = capsys.readouterr().out
    assert out.splitlines() == [
        "demo:SmileyStuff\tSmiley Stuff",
        "ilives:figures\tFigures",
    ]


def test_main_reports_missing_config(monkeypatch, capsys, tmp_path):
    no_section = tmp_path / "fedora.ini"
    no_section.touch()
    monkeypatch.setattr(
        "sys.argv",
        ["script", "--config", str(no_section), "--log_folder", str(tmp_path)],
    )

    with pytest.raises(SystemExit) as exc_info:
        list_collections.main()

    assert exc_info.value.code == 1
    assert "is missing a [fedora] section" in capsys.readouterr().err

