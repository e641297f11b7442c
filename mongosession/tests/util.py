"""Testing helpers."""

from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple

from werkzeug.http import parse_cookie
from werkzeug.wrappers import Request, Response


class FakeCollection(object):
    """Keeps documents in memory, with the parts of the collection API used."""

    name = 'sessions'

    def __init__(self) -> None:
        self.documents: Dict[Any, dict] = {}
        self.indexes: List[Tuple[Any, dict]] = []

    def find_one(self, filter: dict) -> Optional[dict]:
        document = self.documents.get(filter['_id'])
        return deepcopy(document) if document is not None else None

    def replace_one(self, filter: dict, replacement: dict,
                    upsert: bool = False) -> None:
        if upsert or filter['_id'] in self.documents:
            self.documents[filter['_id']] = deepcopy(replacement)

    def delete_one(self, filter: dict) -> None:
        self.documents.pop(filter['_id'], None)

    def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return 'modified_1'


def request_with_cookie(name: Optional[str] = None,
                        value: Optional[str] = None) -> Request:
    """Build a request, optionally carrying a cookie."""
    headers = {}
    if name is not None and value is not None:
        headers['Cookie'] = f'{name}={value}'
    return Request.from_values(headers=headers)


def cookies_set(response: Response) -> Dict[str, Dict[str, str]]:
    """Get the cookies set on ``response``, with their attributes."""
    cookies = {}
    for header in response.headers.getlist('Set-Cookie'):
        name = header.split('=', 1)[0]
        attributes = {key.lower(): value for key, value
                      in parse_cookie(header).items() if key != name}
        attributes['value'] = parse_cookie(header)[name]
        cookies[name] = attributes
    return cookies
