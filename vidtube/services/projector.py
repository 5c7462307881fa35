# vidtube/services/projector.py
"""
Response shapes for joined documents.

A ``Shape`` is an explicit allow-list: only the keys it names reach the
response, whatever else the document carries. Derived flags that depend on
who is asking take the requester as an explicit ``Principal`` argument.
"""
from typing import Any, Dict, Iterable, List, Optional

from vidtube.core.security import Principal


class Projection:
    def resolve(self, doc: dict, principal: Optional[Principal]) -> Any:
        raise NotImplementedError


class Field(Projection):
    def __init__(self, key: str, default: Any = None):
        self.key = key
        self.default = default

    def resolve(self, doc, principal):
        value = doc.get(self.key, self.default)
        return self.default if value is None else value


class One(Projection):
    """Flatten a one-to-one join (a list of length 0 or 1) into an object or ``None``."""

    def __init__(self, key: str, shape: "Shape"):
        self.key = key
        self.shape = shape

    def resolve(self, doc, principal):
        matches = doc.get(self.key) or []
        if not matches:
            return None
        return self.shape.project(matches[0], principal)


class Many(Projection):
    """
    Project every joined child. With ``unwrap`` each child is replaced by its
    own one-to-one join under that key; children whose target is gone are
    dropped.
    """

    def __init__(self, key: str, shape: "Shape", unwrap: Optional[str] = None):
        self.key = key
        self.shape = shape
        self.unwrap = unwrap

    def resolve(self, doc, principal):
        out = []
        for child in doc.get(self.key) or []:
            if self.unwrap is not None:
                inner = child.get(self.unwrap) or []
                if not inner:
                    continue
                child = inner[0]
            out.append(self.shape.project(child, principal))
        return out


class Size(Projection):
    def __init__(self, key: str):
        self.key = key

    def resolve(self, doc, principal):
        return len(doc.get(self.key) or [])


class Member(Projection):
    """True when the requester's id appears as ``field`` in the joined set under ``key``."""

    def __init__(self, key: str, field: str):
        self.key = key
        self.field = field

    def resolve(self, doc, principal):
        if principal is None:
            return False
        return any(child.get(self.field) == principal.id for child in doc.get(self.key) or [])


class Exists(Projection):
    """True when the join under ``key`` matched anything."""

    def __init__(self, key: str):
        self.key = key

    def resolve(self, doc, principal):
        return bool(doc.get(self.key))


class Shape:
    def __init__(self, **fields: Projection):
        self.fields: Dict[str, Projection] = fields

    def extend(self, **fields: Projection) -> "Shape":
        return Shape(**{**self.fields, **fields})

    def project(self, doc: dict, principal: Optional[Principal] = None) -> dict:
        return {name: field.resolve(doc, principal) for name, field in self.fields.items()}

    def project_all(self, docs: Iterable[dict], principal: Optional[Principal] = None) -> List[dict]:
        return [self.project(doc, principal) for doc in docs]
