import logging
from typing import List, Optional, Sequence, Tuple

import pytest

from varsupport.classifier import classify, decide, walk_observations
from varsupport.errors import ObservationError
from varsupport.models import AlignedObservation, Edit
from varsupport.seq import Base, Support
from varsupport.variant import Variant

_EDITS = {"M": Edit.MATCH, "X": Edit.MISMATCH, "I": Edit.INSERTION, "D": Edit.DELETION}


def _b(ch: Optional[str]) -> Optional[Base]:
    return None if ch is None else Base(ch)


def make_stream(
    start0: int, ops: Sequence[Tuple[str, Optional[str], Optional[str]]]
) -> List[AlignedObservation]:
    """Build observations from (op, ref_base, query_base) triples starting at ``start0``."""
    out = []
    rpos = start0
    qpos = 0
    for op, rb, qb in ops:
        edit = _EDITS[op]
        out.append(
            AlignedObservation(
                ref_base=_b(rb),
                query_base=_b(qb),
                edit=edit,
                ref_pos=None if edit is Edit.INSERTION else rpos,
                query_pos=None if edit is Edit.DELETION else qpos,
            )
        )
        if edit is not Edit.INSERTION:
            rpos += 1
        if edit is not Edit.DELETION:
            qpos += 1
    return out


def matches(seq: str) -> List[Tuple[str, str, str]]:
    return [("M", ch, ch) for ch in seq]


def run(variant: str, stream: List[AlignedObservation]) -> Support:
    return classify(stream, True, True, Variant.parse(variant))


def test_snv_alt():
    stream = make_stream(90, matches("GGGGGGGGG") + [("X", "C", "A")] + matches("TTTTT"))
    assert run("1:100C>A", stream) is Support.ALT


def test_snv_ref():
    stream = make_stream(90, matches("GGGGGGGGGCTTTTT"))
    assert run("1:100C>A", stream) is Support.REF


def test_snv_other_allele():
    stream = make_stream(95, matches("GGGG") + [("X", "C", "G")] + matches("TTT"))
    assert run("1:100C>A", stream) is Support.OTH


def test_reference_mismatch_is_other_and_logged(caplog):
    stream = make_stream(95, matches("GGGGTTTT"))
    with caplog.at_level(logging.ERROR):
        assert run("1:100C>A", stream) is Support.OTH
    assert "does not accord" in caplog.text


def test_multi_base_substitution_not_truncated():
    stream = make_stream(95, matches("GGGG") + [("X", "C", "A"), ("X", "G", "T")] + matches("TTT"))
    assert run("1:100CG>AT", stream) is Support.ALT


def test_edit_run_absorbed_past_length_threshold():
    # ref length is reached after the mismatch, but the insertion right after it still counts
    stream = make_stream(95, matches("GGGG") + [("X", "C", "A"), ("I", None, "T")] + matches("TTT"))
    assert run("1:100C>AT", stream) is Support.ALT


def test_single_base_variant_inside_longer_run_is_excessive():
    stream = make_stream(95, matches("GGGG") + [("X", "C", "A"), ("X", "G", "T")] + matches("TTT"))
    assert run("1:100C>A", stream) is Support.ALE


def test_partial_alt():
    stream = make_stream(95, matches("GGGG") + [("X", "C", "A")] + matches("TTT"))
    assert run("1:100C>AT", stream) is Support.ALP


def test_abbreviated_deletion_alt():
    stream = make_stream(95, matches("GGGGG") + [("D", "A", None)] + matches("CCCC"))
    variant = Variant.parse("1:100A>-")
    assert classify(stream, True, True, variant) is Support.ALT

    walk = walk_observations(stream, variant)
    assert walk is not None
    assert walk.observed_ref == [Base.A]
    assert walk.observed_alt == []


def test_abbreviated_multi_base_deletion_alt():
    stream = make_stream(95, matches("GGGGG") + [("D", "A", None), ("D", "C", None)] + matches("TTT"))
    assert run("1:100AC>-", stream) is Support.ALT


def test_abbreviated_deletion_ref():
    stream = make_stream(95, matches("GGGGGACCCC"))
    assert run("1:100A>-", stream) is Support.REF


def test_anchored_deletion_alt():
    stream = make_stream(95, matches("GGGGG") + [("D", "A", None)] + matches("CCCC"))
    assert run("1:100GA>G", stream) is Support.ALT


def test_anchored_insertion_alt():
    stream = make_stream(95, matches("GGGGG") + [("I", None, "T")] + matches("CCCC"))
    assert run("1:100G>GT", stream) is Support.ALT


def test_excess_reference():
    # insertion then deletion of the same base: observed ref/alt agree but run past the window
    stream = make_stream(
        95, matches("GGGGC") + [("I", None, "T"), ("D", "T", None)] + matches("GGG")
    )
    assert run("1:100C>CTTT", stream) is Support.REE


def test_partial_reference_when_read_ends():
    stream = make_stream(95, matches("GGGGC"))
    assert run("1:100CG>AT", stream) is Support.REP


def test_pure_insertion_against_reference_read():
    stream = make_stream(95, matches("GGGGGCCCC"))
    assert run("1:100->T", stream) is Support.REP


def test_unmapped_or_uncovered_read_does_not_touch_stream():
    def boom():
        raise AssertionError("stream must not be produced")

    variant = Variant.parse("1:100C>A")
    assert classify(boom, False, True, variant) is Support.NUL
    assert classify(boom, True, False, variant) is Support.NUL


def test_stream_never_reaches_anchor():
    stream = make_stream(80, matches("GGGGG"))
    assert run("1:100C>A", stream) is Support.NUL


def test_unavailable_stream_is_unknown():
    def no_md():
        raise ObservationError("MD tag missing")

    assert classify(no_md, True, True, Variant.parse("1:100C>A")) is Support.UNK


def test_missing_base_mid_walk_is_unknown():
    stream = make_stream(95, matches("GGGG") + [("M", "C", None)] + matches("TTT"))
    assert run("1:100C>A", stream) is Support.UNK


def test_walk_front_counts_skipped_observations():
    stream = make_stream(90, [("I", None, "A")] + matches("GGGGGGGGG") + [("X", "C", "A")] + matches("TT"))
    walk = walk_observations(stream, Variant.parse("1:100C>A"))
    assert walk is not None
    assert walk.front == 10
    assert walk.last_query_pos == 10


@pytest.mark.parametrize(
    "observed_ref, observed_alt, support",
    [
        ("C", "A", Support.ALT),
        ("C", "C", Support.REF),
        ("T", "A", Support.OTH),
        ("CG", "AT", Support.ALE),
        ("CG", "CG", Support.REE),
    ],
)
def test_decide_table(observed_ref, observed_alt, support):
    v = Variant.parse("1:100C>A")
    ref = [Base(ch) for ch in observed_ref]
    alt = [Base(ch) for ch in observed_alt]
    assert decide(v, ref, alt) is support
