import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

import requests

from fedora_tools.utility.config import FedoraConfig

LOGGER = logging.getLogger(__name__)

FEDORA_URI_PREFIX = "info:fedora/"
RELS_EXT_NS = "info:fedora/fedora-system:def/relations-external#"
RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"

ORDER_BY = re.compile(r"\border\s+by\b", re.IGNORECASE)

FOXML_1_1 = "info:fedora/fedora-system:FOXML-1.1"
EXPORT_FORMATS = [
    FOXML_1_1,
    "info:fedora/fedora-system:FOXML-1.0",
    "info:fedora/fedora-system:METSFedoraExt-1.1",
    "info:fedora/fedora-system:METSFedoraExt-1.0",
    "info:fedora/fedora-system:ATOM-1.1",
    "info:fedora/fedora-system:ATOMZip-1.1",
]
EXPORT_CONTEXTS = ["public", "migrate", "archive"]
# formats that are not a single xml document
EXPORT_EXTENSIONS = {"info:fedora/fedora-system:ATOMZip-1.1": ".zip"}


@dataclass
class QueryResult:
    objects: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def get_response(
    url: str, config: FedoraConfig, params: dict | None = None
) -> requests.Response:
    """GET a repository url, raising for transport errors and non-2xx codes"""
    response = requests.get(url, params=params, auth=config.auth)
    response.raise_for_status()
    return response


def build_query(
    query: str,
    limit: int | None = None,
    offset: int | None = None,
    order_by: str | None = None,
) -> str:
    """
    append itql ordering and paging clauses to a query
    a query that already has an order by clause keeps its own ordering
    """
    clauses = [query.strip()]
    if order_by and not ORDER_BY.search(query):
        clauses.append(f"order by ${order_by.lstrip('$')}")
    if limit is not None:
        clauses.append(f"limit {limit}")
    if offset is not None:
        clauses.append(f"offset {offset}")

    return " ".join(clauses)


def query_resource_index(
    query: str,
    config: FedoraConfig,
    limit: int | None = None,
    offset: int | None = None,
    order_by: str | None = None,
    lang: str = "itql",
) -> bytes:
    """
    run a tuple query against the resource index and return the xml body
    return empty bytes if the request fails
    """

    params = {
        "type": "tuples",
        "flush": "TRUE",
        "format": "Sparql",
        "lang": lang,
        "query": build_query(query, limit, offset, order_by),
    }
    LOGGER.debug(f"risearch {config.repository_url}: {params['query']}")

    try:
        response = get_response(config.repository_url, config, params=params)
    except requests.RequestException as e:
        LOGGER.error(f"Resource index query failed: {e}")
        return b""

    return response.content


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find_child(element: ET.Element, name: str) -> ET.Element | None:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def parse_tuple_results(query_results: bytes | str) -> QueryResult:
    """
    turn a tuple query response into a dictionary of pid: title
    a malformed document gives a QueryResult with error set
    """

    try:
        root = ET.fromstring(query_results)
    except ET.ParseError as e:
        message = f"Error getting list of collection objects {e}"
        LOGGER.error(message)
        return QueryResult(error=message)

    if _local_name(root.tag) == "results":
        results = root
    else:
        results = _find_child(root, "results")

    objects = {}
    if results is None:
        return QueryResult(objects=objects)

    for result in results:
        if _local_name(result.tag) != "result":
            continue
        obj = _find_child(result, "object")
        uri = obj.get("uri") if obj is not None else None
        if not uri:
            LOGGER.warning("Skipping result without an object uri")
            continue
        pid = uri[uri.rfind("/") + 1 :]
        title = _find_child(result, "title")
        objects[pid] = (title.text or "") if title is not None else ""

    return QueryResult(objects=objects)


def get_related_objects(
    query: str,
    config: FedoraConfig,
    limit: int | None = None,
    offset: int | None = None,
    order_by: str | None = None,
) -> QueryResult:
    query_results = query_resource_index(
        query, config, limit=limit, offset=offset, order_by=order_by
    )
    return parse_tuple_results(query_results)


def strip_fedora_prefix(uri: str) -> str:
    if uri.startswith(FEDORA_URI_PREFIX):
        return uri[len(FEDORA_URI_PREFIX) :]
    return uri


def get_relationships(pid: str, predicate: str, config: FedoraConfig) -> bytes:
    """return the RDF/XML relationships of an object for one predicate"""
    url = f"{config.base_url}/objects/{pid}/relationships"
    params = {"subject": f"{FEDORA_URI_PREFIX}{pid}", "predicate": predicate}
    return get_response(url, config, params=params).content


def parse_related_pids(
    relationships: bytes | str, name: str, ns: str = RELS_EXT_NS
) -> list:
    """return the pids referenced by relationship elements named ns+name"""
    root = ET.fromstring(relationships)
    related = []
    for element in root.iter(f"{{{ns}}}{name}"):
        resource = element.get(f"{{{RDF_NS}}}resource")
        if resource:
            related.append(strip_fedora_prefix(resource))

    return related


def export_object(
    pid: str,
    config: FedoraConfig,
    export_format: str = FOXML_1_1,
    context: str = "migrate",
) -> requests.Response:
    """Make a GET request to export an object as a serialized document"""
    url = f"{config.base_url}/objects/{pid}/export"
    params = {"format": export_format, "context": context}
    return get_response(url, config, params=params)
