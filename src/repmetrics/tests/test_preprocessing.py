import numpy as np
import pytest

import repmetrics as rm
from repmetrics.pp import (
    CustomDefinition,
    LineageDefinition,
    LineageIDDefinition,
    VJCdr3Definition,
    first_allele,
    lineage_key,
)


@pytest.mark.parametrize(
    "call,expected",
    [
        ("IGHV1-2*01,IGHV1-2*02", "IGHV1-2*01"),
        ("IGHV1-2*01", "IGHV1-2*01"),
        (" TRBV5-1*01 , TRBV5-1*02", "TRBV5-1*01"),
        ("", ""),
        (None, None),
        (42, 42),
    ],
)
def test_first_allele(call, expected):
    assert first_allele(call) == expected


def test_first_allele_nan():
    assert np.isnan(first_allele(np.nan))


def test_vj_cdr3_definition():
    row = {"v_call": "TRBV1*01,TRBV1*02", "j_call": "TRBJ2*01", "cdr3": "TGTGCC"}
    assert VJCdr3Definition().lineage_key(row) == ("TRBV1*01", "TRBJ2*01", "TGTGCC")
    assert VJCdr3Definition(use_first_allele=False).lineage_key(row) == ("TRBV1*01,TRBV1*02", "TRBJ2*01", "TGTGCC")

    strategy = VJCdr3Definition(v_column="v", j_column="j", cdr3_column="junction_aa")
    assert strategy.lineage_key({"v": "V1", "j": "J1", "junction_aa": "CASS"}) == ("V1", "J1", "CASS")


def test_vj_cdr3_definition_missing_values():
    assert VJCdr3Definition().lineage_key({"v_call": "TRBV1", "cdr3": "nan"}) == ("TRBV1", None, None)
    assert VJCdr3Definition().lineage_key({"v_call": np.nan, "j_call": "", "cdr3": "TGT"}) == (None, None, "TGT")


def test_lineage_id_definition():
    assert LineageIDDefinition().lineage_key({"lineage_id": "c1"}) == "c1"
    assert LineageIDDefinition("clone_id").lineage_key({"clone_id": 7}) == 7
    assert LineageIDDefinition().lineage_key({"clone_id": 7}) is None
    assert LineageIDDefinition().lineage_key({"lineage_id": "N/A"}) is None


def test_custom_definition():
    strategy = CustomDefinition(lambda row: row["v_call"].split("-")[0])
    assert strategy.lineage_key({"v_call": "TRBV5-1*01"}) == "TRBV5"
    assert lineage_key(strategy, {"v_call": "TRBV6-2*01"}) == "TRBV6"


def test_custom_definition_aggregation():
    rows = [{"v_call": "TRBV5-1*01"}, {"v_call": "TRBV5-4*01"}, {"v_call": "TRBV6-2*01"}]
    strategy = CustomDefinition(lambda row: row["v_call"].split("-")[0])
    rep = rm.io.repertoire_from_dataframe(rows, strategy)
    assert rep.lineage_ids == ("TRBV5", "TRBV6")
    assert list(rep.counts) == [2, 1]


def test_lineage_definition_is_abstract():
    with pytest.raises(TypeError):
        LineageDefinition()  # type: ignore

    class FirstColumn(LineageDefinition):
        def lineage_key(self, row):
            return next(iter(row.values()))

    assert lineage_key(FirstColumn(), {"a": 1, "b": 2}) == 1


def test_strategies_are_hashable():
    assert VJCdr3Definition() == VJCdr3Definition()
    assert len({VJCdr3Definition(), VJCdr3Definition(), LineageIDDefinition()}) == 2
