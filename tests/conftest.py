"""Shared fixtures for dashbuild tests."""

import pandas as pd
import pytest

from dashbuild.blocks.registry import BlockRegistry
from dashbuild.specs.content import ContentSpec
from dashbuild.specs.project import ProjectSpec


@pytest.fixture
def registry():
    """Registry loaded from the packaged block definitions."""
    reg = BlockRegistry()
    reg.load()
    return reg


@pytest.fixture
def sales_df():
    return pd.DataFrame(
        {
            "region": ["North", "South", "North", "East"],
            "year": [2022, 2022, 2023, 2023],
            "amount": [120.0, 80.5, 140.0, 60.0],
        }
    )


@pytest.fixture
def sales_project(tmp_path, sales_df):
    """Two-page project with an input, a grouped chart and a table."""
    project = ProjectSpec("Sales Dashboard", output_dir=str(tmp_path / "site"))
    project.add_dataset("sales", sales_df)
    content = (
        ContentSpec()
        .add_input("region_filter", "region", options_from="sales.region", label="Region")
        .add_chart("bar", x="region", y="amount", data="sales", tabgroup="Sales/Q1", title="Q1")
        .add_chart("line", x="year", y="amount", data="sales", tabgroup="Sales/Q2", title="Q2")
        .add_text("Figures are in thousands.")
    )
    project.add_page("Overview", is_landing=True, data="sales")
    project.get_page("Overview").add_content(content)
    project.add_page("Details", data="sales")
    project.get_page("Details").add("table", columns=["region", "amount"])
    return project
