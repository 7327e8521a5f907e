import pickle

import numpy as np
import numpy.testing as npt
import pandas as pd
import pandas.testing as pdt
import pytest

import repmetrics as rm
from repmetrics.io import Repertoire, RepertoireCollection

from . import TESTDATA


def test_repertoire_sorted():
    rep = Repertoire([1, 5, 3], ["a", "b", "c"])
    npt.assert_array_equal(rep.counts, [5, 3, 1])
    assert rep.lineage_ids == ("b", "c", "a")
    assert rep.total_count == 9
    assert isinstance(rep.total_count, int)
    assert rep.richness == len(rep) == 3
    npt.assert_allclose(rep.frequencies, [5 / 9, 3 / 9, 1 / 9])


def test_repertoire_ties_keep_input_order():
    rep = Repertoire([2, 5, 2, 1, 2], ["x", "y", "z", "u", "v"])
    assert rep.lineage_ids == ("y", "x", "z", "v", "u")


def test_repertoire_defaults():
    rep = Repertoire([1, 3])
    assert rep.lineage_ids == ("lineage_2", "lineage_1")
    assert rep.donor_id == ""
    assert dict(rep.metadata) == {}
    assert rep.length_stats is None


def test_repertoire_empty():
    rep = Repertoire([])
    assert rep.richness == 0
    assert rep.total_count == 0
    assert rep.frequencies.shape == (0,)
    assert "0 lineages" in repr(rep)


def test_repertoire_dtypes():
    assert Repertoire(np.array([1, 2], dtype=np.uint8)).counts.dtype == np.int64
    assert Repertoire([1.5, 2.0]).counts.dtype == np.float64
    with pytest.raises(TypeError):
        Repertoire(["a", "b"])
    with pytest.raises(TypeError):
        Repertoire([True, False])


@pytest.mark.parametrize(
    "counts,lineage_ids,match",
    [
        ([[1, 2], [3, 4]], None, "one-dimensional"),
        ([1, 2], ["a"], "same length"),
        ([1, -1], None, "non-negative"),
        ([1.0, np.nan], None, "non-negative"),
    ],
)
def test_repertoire_invalid(counts, lineage_ids, match):
    with pytest.raises(ValueError, match=match):
        Repertoire(counts, lineage_ids)


def test_repertoire_immutable():
    metadata = {"filepath": "a.tsv"}
    rep = Repertoire([3, 1], metadata=metadata)
    metadata["filepath"] = "b.tsv"
    assert rep.metadata["filepath"] == "a.tsv"

    with pytest.raises(TypeError):
        rep.metadata["filepath"] = "c.tsv"  # type: ignore
    with pytest.raises(ValueError):
        rep.counts[0] = 10
    with pytest.raises(AttributeError):
        rep.donor_id = "foo"  # type: ignore


def test_repertoire_pickle(rep_uneven):
    rep = pickle.loads(pickle.dumps(rep_uneven))
    npt.assert_array_equal(rep.counts, rep_uneven.counts)
    assert rep.lineage_ids == rep_uneven.lineage_ids
    assert rep.donor_id == "A"
    assert not rep.counts.flags.writeable
    with pytest.raises(ValueError):
        rep.counts[0] = 10


def test_repertoire_pickle_keeps_attachments():
    stats = rm.tl.compute_length_stats([3, 4, 2, 5], [10, 5, 3, 2])
    rep = Repertoire([2.0, 2.0, 5.0], ["x", "y", "z"], donor_id="P", metadata={"a": 1}, length_stats=stats)
    res = pickle.loads(pickle.dumps(rep))
    assert res.lineage_ids == ("z", "x", "y")
    assert res.counts.dtype == np.float64
    assert dict(res.metadata) == {"a": 1}
    assert res.length_stats == stats


def test_repertoire_repr(rep_uneven):
    lines = repr(rep_uneven).split("\n")
    assert lines[0] == "Repertoire of donor A with 7 lineages and a total count of 157"
    assert "lineage_3: 100" in lines[2]
    assert lines[-1].strip() == "... and 2 more"


def test_repertoire_collection(collection, rep_even):
    assert len(collection) == 3
    assert collection.donor_ids == ("A", "B", "C")
    assert collection[1] is rep_even
    assert collection.by_donor("B") is rep_even
    assert [rep.donor_id for rep in collection] == ["A", "B", "C"]

    subset = collection[1:]
    assert isinstance(subset, RepertoireCollection)
    assert subset.donor_ids == ("B", "C")

    with pytest.raises(KeyError):
        collection.by_donor("Z")
    with pytest.raises(TypeError):
        RepertoireCollection([[1, 2, 3]])  # type: ignore


def test_repertoire_from_dataframe(airr_df):
    rep = rm.io.repertoire_from_dataframe(airr_df, rm.pp.VJCdr3Definition(), donor_id="P1")
    assert rep.donor_id == "P1"
    # s4 has no J gene; the NA count of s5 counts once
    npt.assert_array_equal(rep.counts, [16, 7, 1])
    assert rep.lineage_ids == (
        "TRBV1*01|TRBJ1*01|TGTGCCAGC",
        "TRBV2*01|TRBJ2*01|TGTGCCAGCAGT",
        "TRBV4*01|TRBJ1*01|TGTGCCAGCAGTTTA",
    )
    assert rep.metadata["strategy"] == "VJCdr3Definition"
    assert rep.metadata["original_rows"] == 7
    assert rep.length_stats is None


def test_repertoire_from_dataframe_without_count(airr_df):
    rep = rm.io.repertoire_from_dataframe(airr_df, rm.pp.VJCdr3Definition(), count_column=None)
    npt.assert_array_equal(rep.counts, [3, 2, 1])

    rep = rm.io.repertoire_from_dataframe(airr_df, rm.pp.VJCdr3Definition(), count_column="duplicate_count")
    npt.assert_array_equal(rep.counts, [3, 2, 1])


def test_repertoire_from_dataframe_donor_column(airr_df):
    rep = rm.io.repertoire_from_dataframe(airr_df, rm.pp.VJCdr3Definition(), donor_column="library_id")
    assert rep.donor_id == "donor1"
    # an explicit donor id takes precedence
    rep = rm.io.repertoire_from_dataframe(
        airr_df, rm.pp.VJCdr3Definition(), donor_id="P1", donor_column="library_id"
    )
    assert rep.donor_id == "P1"


def test_repertoire_from_records():
    rows = [
        {"lineage_id": "a", "count": 2},
        {"lineage_id": "b"},
        {"lineage_id": "a", "count": "3"},
        {"lineage_id": None, "count": 5},
        {"lineage_id": "c", "count": "abc"},
        {"lineage_id": "c", "count": 1.6},
    ]
    rep = rm.io.repertoire_from_dataframe(rows, rm.pp.LineageIDDefinition(), metadata={"source": "test"})
    assert dict(zip(rep.lineage_ids, rep.counts, strict=True)) == {"a": 5, "b": 1, "c": 3}
    assert rep.counts.dtype == np.int64
    assert rep.metadata["source"] == "test"
    assert rep.metadata["strategy"] == "LineageIDDefinition"


def test_repertoire_from_dataframe_length_stats(airr_df):
    rep = rm.io.repertoire_from_dataframe(airr_df, rm.pp.VJCdr3Definition(), length_column="cdr3")
    assert rep.length_stats is not None
    assert rep.length_stats.weighted
    assert rep.length_stats.n_sequences == 26
    assert rep.length_stats.column == "cdr3"

    rep = rm.io.repertoire_from_dataframe(
        airr_df, rm.pp.VJCdr3Definition(), count_column=None, length_column="cdr3", length_aa=True
    )
    assert not rep.length_stats.weighted
    assert rep.length_stats.max_length == 15


def test_repertoire_from_dataframe_missing_length_column(airr_df):
    rep = rm.io.repertoire_from_dataframe(airr_df, rm.pp.VJCdr3Definition(), length_column="junction_aa")
    assert rep.length_stats is None
    assert not rm.tl.has_length_stats(rep)
    with pytest.raises(rm.tl.LengthStatsNotComputedError):
        rm.tl.compute_metrics(rep, rm.tl.Metric.MEAN_LENGTH)
    with pytest.raises(rm.tl.LengthStatsNotComputedError):
        rm.tl.mean_length(rep)


def test_repertoire_from_empty_dataframe():
    rep = rm.io.repertoire_from_dataframe(pd.DataFrame(columns=["lineage_id"]), rm.pp.LineageIDDefinition())
    assert rep.richness == 0
    assert rep.metadata["original_rows"] == 0


def test_read_repertoire():
    rep = rm.io.read_repertoire(TESTDATA / "donor1.tsv", rm.pp.VJCdr3Definition())
    assert rep.donor_id == "donor1"
    npt.assert_array_equal(rep.counts, [15, 3, 2, 1])
    assert rep.lineage_ids[0] == "TRBV1*01|TRBJ1*01|TGTGCCAGC"
    assert rep.metadata["filepath"] == str(TESTDATA / "donor1.tsv")
    assert rep.metadata["original_rows"] == 6


def test_read_repertoire_options():
    rep = rm.io.read_repertoire(
        TESTDATA / "donor1.tsv", rm.pp.VJCdr3Definition(), donor_column="library_id", length_column="cdr3"
    )
    assert rep.donor_id == "D1"
    assert rep.length_stats.n_sequences == 28
    assert rep.length_stats.min_length == 2
    assert rep.length_stats.max_length == 5

    rep = rm.io.read_repertoire(TESTDATA / "donor1.tsv", rm.pp.LineageIDDefinition("sequence_id"), donor_id="X")
    assert rep.donor_id == "X"
    assert rep.richness == 6


def test_read_repertoires_from_directory():
    reps = rm.io.read_repertoires_from_directory(TESTDATA, rm.pp.VJCdr3Definition())
    assert reps.donor_ids == ("donor1", "donor2")
    npt.assert_array_equal(reps.by_donor("donor2").counts, [5, 5, 5, 5])

    reps = rm.io.read_repertoires_from_directory(TESTDATA, rm.pp.VJCdr3Definition(), pattern="DONOR2")
    assert reps.donor_ids == ("donor2",)

    assert len(rm.io.read_repertoires_from_directory(TESTDATA, rm.pp.VJCdr3Definition(), pattern=r"\.csv$")) == 0

    with pytest.raises(ValueError):
        rm.io.read_repertoires_from_directory(TESTDATA / "donor1.tsv", rm.pp.VJCdr3Definition())


def test_read_repertoires():
    reps = rm.io.read_repertoires([TESTDATA / "donor2.tsv", TESTDATA / "donor1.tsv"], rm.pp.VJCdr3Definition())
    assert reps.donor_ids == ("donor2", "donor1")


def test_split_by_donor(airr_df):
    reps = rm.io.split_by_donor(airr_df, "library_id", rm.pp.VJCdr3Definition())
    assert reps.donor_ids == ("donor1", "donor2")
    npt.assert_array_equal(reps.by_donor("donor1").counts, [15, 3])
    npt.assert_array_equal(reps.by_donor("donor2").counts, [4, 1])

    reps = rm.io.split_by_donor(airr_df, "library_id", rm.pp.VJCdr3Definition(), count_column=None)
    npt.assert_array_equal(reps.by_donor("donor1").counts, [2, 1])

    with pytest.raises(KeyError):
        rm.io.split_by_donor(airr_df, "donor", rm.pp.VJCdr3Definition())


def test_write_metrics(tmp_path, collection):
    df = rm.get.metrics_to_dataframe(rm.tl.compute_metrics(collection, rm.tl.RICHNESS_METRICS), collection)
    rm.io.write_metrics(tmp_path / "metrics.tsv", df)
    pdt.assert_frame_equal(pd.read_csv(tmp_path / "metrics.tsv", sep="\t"), df)
