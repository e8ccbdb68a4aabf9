"""Tests for page/limit validation and the page envelope."""

from __future__ import annotations

import pytest

from app.core.config import get_settings
from app.core.errors import InvalidArgument
from app.services.aggregation.pagination import coerce_page_args, page_envelope


class TestCoercePageArgs:

    def test_defaults(self):
        settings = get_settings()
        assert coerce_page_args() == (settings.default_page, settings.default_page_size)

    def test_strings_are_parsed(self):
        assert coerce_page_args("2", "15") == (2, 15)

    def test_limit_is_capped(self):
        assert coerce_page_args(1, 10_000) == (1, get_settings().max_page_size)

    @pytest.mark.parametrize("page,limit", [(0, 10), (1, -5), ("abc", 10), (1, "1.5")])
    def test_rejects_non_positive_or_garbage(self, page, limit):
        with pytest.raises(InvalidArgument):
            coerce_page_args(page, limit)

    @pytest.mark.parametrize("page,limit", [(None, 10), (1, None), ("", "")])
    def test_required(self, page, limit):
        with pytest.raises(InvalidArgument):
            coerce_page_args(page, limit, required=True)


class TestPageEnvelope:

    def test_math(self):
        envelope = page_envelope(["a", "b"], 25, 3, 10)
        assert envelope == {
            "items": ["a", "b"],
            "total_items": 25,
            "total_pages": 3,
            "current_page": 3,
            "limit": 10,
        }

    def test_empty(self):
        assert page_envelope([], 0, 1, 10)["total_pages"] == 0
