"""
Academic year value type.

An academic year runs from 1 September to 31 August and is written as
"2023/2024".
"""

import re
from datetime import date
from typing import Any

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

ACADEMIC_YEAR_REGEXP = re.compile(r"\A20\d{2}/20\d{2}\Z")
START_MONTH = 9


class AcademicYear:
    """A single academic year, identified by the calendar year it starts in."""

    __slots__ = ("start_year",)

    def __init__(self, start_year: int) -> None:
        self.start_year = int(start_year)

    @property
    def end_year(self) -> int:
        return self.start_year + 1

    @classmethod
    def for_date(cls, day: date) -> "AcademicYear":
        if day.month >= START_MONTH:
            return cls(day.year)
        return cls(day.year - 1)

    @classmethod
    def current(cls, today: date | None = None) -> "AcademicYear":
        return cls.for_date(today or date.today())

    @classmethod
    def parse(cls, value: str) -> "AcademicYear":
        if not ACADEMIC_YEAR_REGEXP.match(value):
            raise ValueError(f"Invalid academic year: {value!r}")
        start, end = (int(part) for part in value.split("/"))
        if end != start + 1:
            raise ValueError(f"Invalid academic year: {value!r}")
        return cls(start)

    def start_date(self) -> date:
        return date(self.start_year, START_MONTH, 1)

    def next(self) -> "AcademicYear":
        return AcademicYear(self.start_year + 1)

    def previous(self) -> "AcademicYear":
        return AcademicYear(self.start_year - 1)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AcademicYear):
            return self.start_year == other.start_year
        if isinstance(other, str):
            return str(self) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.start_year)

    def __str__(self) -> str:
        return f"{self.start_year}/{self.end_year}"

    def __repr__(self) -> str:
        return f"AcademicYear({self.start_year})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Accept AcademicYear instances or "YYYY/YYYY" strings; dump as str."""

        def validate(value: Any) -> "AcademicYear":
            if isinstance(value, AcademicYear):
                return value
            if isinstance(value, int):
                return cls(value)
            if isinstance(value, str):
                return cls.parse(value)
            raise ValueError(f"Cannot convert {value!r} to an academic year")

        return core_schema.no_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )
