from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from bulkspec import TableInfo


@pytest.fixture
def make_table_info() -> Callable[..., TableInfo]:
    """Factory for the ``dbo.Item`` table staged in ``dbo.ItemTemp1234``.

    Keyword arguments override the defaults.
    """

    def factory(**overrides: Any) -> TableInfo:
        columns = overrides.pop("property_column_names", {"ItemId": "ItemId", "Name": "Name"})
        options: dict[str, Any] = {
            "schema": "dbo",
            "table_name": "Item",
            "temp_table_name": "ItemTemp1234",
            "temp_table_suffix": "Temp1234",
            "primary_keys": {"ItemId": "ItemId"},
            "identity_column_name": "ItemId",
            "property_column_names": columns,
        }
        options.update(overrides)
        return TableInfo(**options)

    return factory


@pytest.fixture
def item_table_info(make_table_info: Callable[..., TableInfo]) -> TableInfo:
    return make_table_info()
