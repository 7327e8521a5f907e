from collections.abc import Mapping
from numbers import Real
from textwrap import dedent
from typing import Any

import numpy as np
import pandas as pd
from joblib import Parallel
from scanpy import logging
from tqdm.auto import tqdm

# reexport tqdm
__all__ = ["tqdm"]


def _doc_params(**kwds):
    """\
    Docstrings should start with "\\" in the first line for proper formatting.
    """

    def dec(obj):
        obj.__orig_doc__ = obj.__doc__
        obj.__doc__ = dedent(obj.__doc__).format_map(kwds)
        return obj

    return dec


def _is_na2(x):
    """Check if an object or string is NaN.
    The function is vectorized over numpy arrays or pandas Series
    but also works for single values.

    Pandas Series are converted to numpy arrays.
    """
    if isinstance(x, str):
        return x in ("NaN", "nan", "None", "N/A", "")
    return x is None or (np.ndim(x) == 0 and bool(pd.isnull(x)))


_is_na = np.vectorize(_is_na2, otypes=[bool])


def _get_field(row: Mapping[str, Any], column: str) -> Any | None:
    """Retrieve a single cell from a table row.

    Absent columns and NA cells both resolve to `None`, so that callers
    only ever need to check for `None`.
    """
    value = row.get(column)
    return None if _is_na2(value) else value


def _as_count(value: Any, default: int | None = 1) -> int | None:
    """Interpret a table cell as an integer count.

    Numbers are rounded to the nearest integer (half to even), numeric strings are parsed.
    NA cells and values that cannot be interpreted as a number yield `default`.
    """
    if _is_na2(value) or isinstance(value, bool):
        return default
    try:
        number = value if isinstance(value, Real) else float(str(value).strip())
        return int(np.rint(number))
    except (ValueError, OverflowError):
        return default


def _parallelize_with_joblib(delayed_objects, *, total=None, **kwargs):
    """Wrapper around joblib.Parallel that shows a progressbar if the backend supports it.

    Progressbar solution from https://stackoverflow.com/a/76726101/2340703
    """
    try:
        return tqdm(Parallel(return_as="generator", **kwargs)(delayed_objects), total=total)
    except ValueError:
        logging.info(
            "Backend doesn't support return_as='generator'. No progress bar will be shown. "
            "Consider setting verbosity in joblib.parallel_config"
        )
        return Parallel(return_as="list", **kwargs)(delayed_objects)
