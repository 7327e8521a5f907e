import numpy as np
import pandas as pd
import pytest

import repmetrics as rm


@pytest.fixture
def rep_uneven():
    return rm.io.Repertoire([1, 2, 100, 1, 50, 2, 1], donor_id="A")


@pytest.fixture
def rep_even():
    return rm.io.Repertoire([10, 10, 10, 10], ["a", "b", "c", "d"], donor_id="B")


@pytest.fixture
def rep_single():
    return rm.io.Repertoire([42], ["only"], donor_id="C")


@pytest.fixture
def rep_empty():
    return rm.io.Repertoire([], donor_id="D")


@pytest.fixture
def collection(rep_uneven, rep_even, rep_single):
    return rm.io.RepertoireCollection([rep_uneven, rep_even, rep_single])


@pytest.fixture
def airr_df():
    return pd.DataFrame(
        # fmt: off
        [
            ["s1", "TRBV1*01,TRBV1*02", "TRBJ1*01", "TGTGCCAGC", 10, "donor1"],
            ["s2", "TRBV1*01", "TRBJ1*01", "TGTGCCAGC", 5, "donor1"],
            ["s3", "TRBV2*01", "TRBJ2*01", "TGTGCCAGCAGT", 3, "donor1"],
            ["s4", "TRBV3*01", None, "TGTGCC", 2, "donor1"],
            ["s5", "TRBV1*01", "TRBJ1*01", "TGTGCCAGC", np.nan, "donor2"],
            ["s6", "TRBV2*01", "TRBJ2*01", "TGTGCCAGCAGT", 4, "donor2"],
            ["s7", "TRBV4*01", "TRBJ1*01", "TGTGCCAGCAGTTTA", 1, np.nan],
        ],
        # fmt: on
        columns=["sequence_id", "v_call", "j_call", "cdr3", "count", "library_id"],
    )
