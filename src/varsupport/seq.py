"""Base alphabet, sequence comparison and read support categories."""

from __future__ import annotations

from enum import Enum
from typing import Sequence, Tuple

from .errors import VariantParseError

EMPTY_TOKEN = "-"


class Base(Enum):
    """Nucleotide; N stands for a base the sequencer could not call."""

    A = "A"
    T = "T"
    C = "C"
    G = "G"
    N = "N"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_char(cls, ch: str) -> "Base":
        """Parse one base, case-insensitive."""
        try:
            return cls(ch.upper())
        except ValueError:
            raise VariantParseError(f"Error parsing '{ch}' as a valid base.", text=ch) from None


Bases = Tuple[Base, ...]


def parse_bases(text: str) -> Bases:
    """Parse a base sequence; ``-`` is the empty sequence."""
    if text == EMPTY_TOKEN:
        return ()
    if not text:
        raise VariantParseError("Empty base sequence; use '-' for an empty allele.", text=text)
    try:
        return tuple(Base.from_char(ch) for ch in text)
    except VariantParseError:
        raise VariantParseError(f"Error parsing '{text}' as a base sequence.", text=text) from None


def format_bases(bases: Sequence[Base]) -> str:
    if not bases:
        return EMPTY_TOKEN
    return "".join(b.value for b in bases)


class Ordering(Enum):
    """How an observed sequence relates to an expected one."""

    EQU = "Equ"  # identical
    EMP = "Emp"  # exactly one side empty
    SUP = "Sup"  # observed is a truncated prefix of expected
    SUB = "Sub"  # observed extends beyond expected
    NUL = "Nul"  # incompatible


def compare(expected: Sequence[Base], observed: Sequence[Base]) -> Ordering:
    """Compare ``expected`` against ``observed``.

    Checks run in the order Equ, Emp, Sup, Sub, so two empty sequences are Equ.
    """
    expected = tuple(expected)
    observed = tuple(observed)
    if expected == observed:
        return Ordering.EQU
    if not expected or not observed:
        return Ordering.EMP
    if expected[: len(observed)] == observed:
        return Ordering.SUP
    if observed[: len(expected)] == expected:
        return Ordering.SUB
    return Ordering.NUL


class Support(Enum):
    """Evidence one read provides for one variant.

    REF/REP/REE are full, partial and excessive reference support; ALT/ALP/ALE
    the same for the alternate allele. OTH is another allele (or a read whose
    reference disagrees with the variant), UNK means the read's bases could not
    be extracted and NUL means the read does not overlap the variant.
    """

    REF = "Ref"
    REP = "Rep"
    REE = "Ree"
    ALT = "Alt"
    ALP = "Alp"
    ALE = "Ale"
    OTH = "Oth"
    UNK = "Unk"
    NUL = "Nul"

    def __str__(self) -> str:
        return self.value

    def is_ref(self) -> bool:
        return self is Support.REF

    def may_ref(self) -> bool:
        return self in (Support.REP, Support.REE)

    def any_ref(self) -> bool:
        return self.is_ref() or self.may_ref()

    def is_alt(self) -> bool:
        return self is Support.ALT

    def may_alt(self) -> bool:
        return self in (Support.ALP, Support.ALE)

    def any_alt(self) -> bool:
        return self.is_alt() or self.may_alt()

    def is_oth(self) -> bool:
        return self is Support.OTH

    def is_nul(self) -> bool:
        return self is Support.NUL
