"""JSON for command output and log record extras."""

from __future__ import annotations

import datetime
import decimal
import enum
import json as pyjson
import typing as t

import pydantic as p

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]


def encode(obj: t.Any) -> JSONValue:
    """Encode the values reports and log extras carry; anything else raises TypeError."""
    match obj:
        case p.BaseModel():
            return obj.model_dump(mode="json")
        case enum.Enum():
            return obj.value
        case datetime.date():
            return obj.isoformat()
        case decimal.Decimal():
            return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JSONEncoder(pyjson.JSONEncoder):
    def default(self, o: t.Any) -> JSONValue:
        return encode(o)


def dumps(obj: t.Any, **kw: t.Any) -> str:
    kw.setdefault("cls", JSONEncoder)
    return pyjson.dumps(obj, **kw)
