import pysam
import pytest

from varsupport.classifier import classify_read
from varsupport.errors import ObservationError
from varsupport.models import Bucket, Edit, Thresholds
from varsupport.observations import aligned_observations, read_covers_variant
from varsupport.seq import Base, Support
from varsupport.toy_data import make_read, md_tag
from varsupport.variant import Variant

REF = "ACGTTGCA" * 20  # ref[60] == "T"


def _alt_read(name: str, start: int, length: int, mapq: int = 60) -> pysam.AlignedSegment:
    seq = REF[start : start + length]
    rel = 60 - start
    query = seq[:rel] + "C" + seq[rel + 1 :]
    return make_read(name, REF, start, query, mapq=mapq)


def test_md_tag():
    assert md_tag("ACGTACGT", "ACGTACGT", [(0, 8)]) == "8"
    assert md_tag("ACGTACGT", "ACCTACGA", [(0, 8)]) == "2G4T0"
    assert md_tag("ACGTACGT", "ACGACGT", [(0, 3), (2, 1), (0, 4)]) == "3^T4"


def test_observations_simple_match():
    read = make_read("r1", "ACGTACGTAA", 0, "ACGTACGTAA")
    obs = list(aligned_observations(read))
    assert len(obs) == 10
    assert all(o.edit is Edit.MATCH for o in obs)
    assert [o.ref_pos for o in obs] == list(range(10))
    assert obs[3].ref_base is Base.T and obs[3].query_base is Base.T


def test_observations_mismatch_uses_md_reference():
    read = make_read("r1", "ACGTACGTAA", 0, "ACGAACGTAA")
    obs = list(aligned_observations(read))
    assert obs[3].edit is Edit.MISMATCH
    assert obs[3].ref_base is Base.T
    assert obs[3].query_base is Base.A


def test_observations_skip_soft_clips_and_keep_indels():
    ref = "ACGTACGTACGT"
    query = "TT" + "ACG" + "G" + "TA" + "GTA"
    cigar = [(4, 2), (0, 3), (1, 1), (0, 2), (2, 1), (0, 3)]
    read = make_read("r1", ref, 0, query, cigartuples=cigar)
    obs = list(aligned_observations(read))

    assert [o.edit for o in obs] == [
        Edit.MATCH,
        Edit.MATCH,
        Edit.MATCH,
        Edit.INSERTION,
        Edit.MATCH,
        Edit.MATCH,
        Edit.DELETION,
        Edit.MATCH,
        Edit.MATCH,
        Edit.MATCH,
    ]
    assert obs[0].query_pos == 2
    ins = obs[3]
    assert ins.ref_pos is None and ins.query_base is Base.G and ins.query_pos == 5
    dele = obs[6]
    assert dele.ref_pos == 5 and dele.ref_base is Base.C and dele.query_pos is None


def test_missing_md_raises():
    read = make_read("r1", REF, 0, REF[:20], with_md=False)
    with pytest.raises(ObservationError):
        aligned_observations(read)


def test_read_covers_variant():
    read = make_read("r1", REF, 40, REF[40:90])
    assert read_covers_variant(read, Variant.parse("1:61T>C"))
    assert read_covers_variant(read, Variant.parse("1:41A>C"))
    assert read_covers_variant(read, Variant.parse("1:90A>C"))
    assert not read_covers_variant(read, Variant.parse("1:91A>C"))
    assert not read_covers_variant(read, Variant.parse("1:40A>C"))


def test_classify_read_buckets():
    t = Thresholds()
    v = Variant.parse("1:61T>C")

    proper = classify_read(_alt_read("proper", 40, 50), v, t)
    assert proper.support is Support.ALT
    assert proper.bucket is Bucket.PROPER
    assert (proper.front, proper.end) == (20, 30)

    assert classify_read(_alt_read("lowq", 40, 50, mapq=10), v, t).bucket is Bucket.LOWQ
    assert classify_read(_alt_read("front", 55, 50), v, t).bucket is Bucket.MARGIN
    assert classify_read(_alt_read("tail", 20, 45), v, t).bucket is Bucket.MARGIN


def test_classify_read_reference_unknown_and_nul():
    t = Thresholds()
    v = Variant.parse("1:61T>C")

    ref = classify_read(make_read("ref", REF, 40, REF[40:90]), v, t)
    assert ref.support is Support.REF and ref.bucket is Bucket.REFERENCE

    no_md = classify_read(make_read("nomd", REF, 40, REF[40:90], with_md=False), v, t)
    assert no_md.support is Support.UNK and no_md.bucket is Bucket.UNKNOWN

    away = classify_read(make_read("away", REF, 100, REF[100:150]), v, t)
    assert away.support is Support.NUL and away.bucket is None

    unmapped = make_read("unmapped", REF, 40, REF[40:90])
    unmapped.is_unmapped = True
    assert classify_read(unmapped, v, t).bucket is None
