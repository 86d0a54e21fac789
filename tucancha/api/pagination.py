from typing import Annotated, TypeVar

from fastapi import Query
from sqlalchemy import Select

LimitParam = Annotated[int, Query(ge=1, le=100, description="Page size")]
OffsetParam = Annotated[int, Query(ge=0, description="Rows to skip")]

SelectT = TypeVar("SelectT", bound=Select)


def paginate(query: SelectT, limit: int, offset: int) -> SelectT:
    return query.limit(limit).offset(offset)
