"""
MagicQ Section Data - Typed views over generic sections.

A SectionData class reads named, typed properties out of a Section and can
build an equivalent Section back. Only the Version section is described so
far; its layout as written by the console:

    V,007d,"MagicQ 1",01090307,0000,0002,;
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, TypeVar

from magicq.document import HexValue, Row, Section, SectionIdentifier, Showfile, StringValue
from magicq.errors import FieldTypeError
from magicq.spec import SectionKind

T = TypeVar("T", bound="SectionData")


class SectionData(ABC):
    """Base for typed section views."""

    KIND: ClassVar[SectionKind]

    @classmethod
    @abstractmethod
    def from_section(cls: type[T], section: Section) -> T:
        """Read the typed view out of a section of this kind."""

    @abstractmethod
    def to_section(self) -> Section:
        """Build a section that writes back as the console would."""

    @abstractmethod
    def describe(self) -> list[tuple[str, str]]:
        """(name, display value) pairs for listings."""

    @classmethod
    def from_showfile(cls: type[T], showfile: Showfile) -> T:
        """Project the first section of this kind."""
        section = showfile.get_section(cls.KIND)
        if section is None:
            raise KeyError(f"Showfile has no {cls.KIND.value} section")
        return cls.from_section(section)

    @classmethod
    def _check_kind(cls, section: Section) -> None:
        if section.kind is not cls.KIND:
            raise FieldTypeError(
                f"{cls.KIND.value} section expected, got {section.identifier} instead"
            )


@dataclass(frozen=True)
class Version(SectionData):
    """File revision, product name and software version of a showfile."""

    KIND: ClassVar[SectionKind] = SectionKind.VERSION

    revision: int
    product: str
    software: int
    value2: int
    value3: int

    @classmethod
    def from_section(cls, section: Section) -> Version:
        cls._check_kind(section)
        row = section[0]
        if len(row) < 5:
            raise FieldTypeError(f"Version row has {len(row)} fields, expected 5")
        return cls(
            revision=row.get_hex(0, 4),
            product=row.get_string(1),
            software=row.get_hex(2, 8),
            value2=row.get_hex(3, 4),
            value3=row.get_hex(4, 4),
        )

    def to_section(self) -> Section:
        row = Row(
            (
                HexValue(self.revision, 4),
                StringValue(self.product),
                HexValue(self.software, 8),
                HexValue(self.value2, 4),
                HexValue(self.value3, 4),
            ),
            trailing_comma=True,
            trailing_newlines=0,
        )
        return Section(SectionIdentifier.for_kind(self.KIND), (row,), trailing_newlines=1)

    def describe(self) -> list[tuple[str, str]]:
        return [
            ("revision", f"{self.revision:04x}"),
            ("product", self.product),
            ("software", self.software_version),
            ("value2", f"{self.value2:04x}"),
            ("value3", f"{self.value3:04x}"),
        ]

    @property
    def software_version(self) -> str:
        """Software version as dotted bytes, e.g. 0x01090307 -> "1.9.3.7"."""
        return ".".join(str(b) for b in self.software.to_bytes(4, "big"))


SECTION_DATA: dict[SectionKind, type[SectionData]] = {
    Version.KIND: Version,
}
