"""Input options derived from dataset columns."""

import logging
from typing import Mapping, Optional

import pandas as pd

from ..blocks.schemas import InputBlock
from ..errors import ConfigError

logger = logging.getLogger(__name__)


def column_options(df: pd.DataFrame, column: str) -> list:
    """Distinct non-null values of ``column``, sorted, as plain Python values."""
    values = df[column].dropna().unique().tolist()
    try:
        return sorted(values)
    except TypeError:
        return sorted(values, key=str)


def resolve_input_options(
    block: InputBlock,
    datasets: Mapping[str, pd.DataFrame],
    default_dataset: Optional[str] = None,
) -> InputBlock:
    """Fill ``options`` from ``options_from`` and return a copy.

    ``options_from`` is ``"dataset.column"`` or a bare column of the
    page's default dataset. Explicit ``options`` win.

    Raises:
        ConfigError: If the dataset or column does not exist.
    """
    if block.options is not None or block.options_from is None:
        return block

    if "." in block.options_from:
        dataset, column = block.options_from.split(".", 1)
    else:
        dataset, column = default_dataset, block.options_from

    df = datasets.get(dataset) if dataset else None
    if df is None:
        raise ConfigError(
            f"Input '{block.input_id}' takes options from unknown dataset '{dataset}'",
            context={"input_id": block.input_id},
        )
    if column not in df.columns:
        raise ConfigError(
            f"Input '{block.input_id}' takes options from missing column "
            f"'{column}' of dataset '{dataset}'",
            context={"input_id": block.input_id, "dataset": dataset},
        )

    options = column_options(df, column)
    logger.debug(f"Input '{block.input_id}': {len(options)} options from {dataset}.{column}")
    return block.model_copy(update={"options": tuple(options)})
