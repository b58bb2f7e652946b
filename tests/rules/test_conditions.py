"""
Tests for rule conditions: keyword, regex and the machine-learning placeholder.
"""

import pytest

from sovereign_attention.content import Content
from sovereign_attention.core.exceptions import ErrorCode, ValidationError
from sovereign_attention.rules import (
    KeywordCondition,
    MachineLearningCondition,
    PatternCache,
    RegexCondition,
)


class TestKeywordCondition:
    """Test case-insensitive substring matching."""

    @pytest.mark.asyncio
    async def test_matches_regardless_of_case(self):
        condition = KeywordCondition("sponsored")
        content = Content(id="c1", text="This is a Sponsored post")

        assert await condition.evaluate(content, PatternCache()) is True

    @pytest.mark.asyncio
    async def test_uppercase_keyword_matches_lowercase_text(self):
        condition = KeywordCondition("ADS")
        content = Content(id="c1", text="no more ads please")

        assert await condition.evaluate(content, PatternCache()) is True

    @pytest.mark.asyncio
    async def test_no_match(self):
        condition = KeywordCondition("sponsored")
        content = Content(id="c1", text="An organic post")

        assert await condition.evaluate(content, PatternCache()) is False

    @pytest.mark.asyncio
    async def test_substring_inside_word_matches(self):
        condition = KeywordCondition("cat")
        content = Content(id="c1", text="Concatenate")

        assert await condition.evaluate(content, PatternCache()) is True

    def test_wire_encoding(self):
        assert KeywordCondition("x").to_wire() == {"Keyword": "x"}

    def test_equality(self):
        assert KeywordCondition("x") == KeywordCondition("x")
        assert KeywordCondition("x") != KeywordCondition("y")


class TestRegexCondition:
    """Test regex matching through the shared pattern cache."""

    @pytest.mark.asyncio
    async def test_matches_anywhere_in_text(self):
        patterns = PatternCache()
        condition = RegexCondition(r"https?://\S+")
        content = Content(id="c1", text="Check this link: https://example.com")

        assert await condition.evaluate(content, patterns) is True

    @pytest.mark.asyncio
    async def test_no_match(self):
        condition = RegexCondition(r"^\d+$")
        content = Content(id="c1", text="not a number")

        assert await condition.evaluate(content, PatternCache()) is False

    @pytest.mark.asyncio
    async def test_compiles_on_demand_when_not_cached(self):
        patterns = PatternCache()
        condition = RegexCondition(r"fo+")

        assert len(patterns) == 0
        assert await condition.evaluate(Content(id="c1", text="fooo"), patterns) is True
        assert len(patterns) == 1
        assert await patterns.contains(r"fo+")

    @pytest.mark.asyncio
    async def test_uses_cached_matcher(self):
        patterns = PatternCache()
        await patterns.compile(r"bar")
        condition = RegexCondition(r"bar")

        await condition.evaluate(Content(id="c1", text="foobar"), patterns)
        await condition.evaluate(Content(id="c2", text="baz"), patterns)

        stats = patterns.stats()
        assert stats['size'] == 1
        assert stats['hits'] >= 2

    @pytest.mark.asyncio
    async def test_invalid_pattern_raises_validation_error(self):
        condition = RegexCondition(r"([unclosed")

        with pytest.raises(ValidationError) as exc_info:
            await condition.evaluate(Content(id="c1", text="anything"), PatternCache())

        assert exc_info.value.error_code == ErrorCode.VALIDATION_INVALID_PATTERN

    def test_wire_encoding(self):
        assert RegexCondition("p").to_wire() == {"Regex": "p"}


class TestMachineLearningCondition:
    """The ML condition is a placeholder that never matches."""

    @pytest.mark.asyncio
    async def test_never_matches(self):
        condition = MachineLearningCondition(model_id="spam-detector", threshold=0.0)
        content = Content(id="c1", text="buy now, limited offer, sponsored")

        assert await condition.evaluate(content, PatternCache()) is False

    def test_default_threshold(self):
        assert MachineLearningCondition(model_id="m").threshold == 0.5

    def test_wire_encoding(self):
        condition = MachineLearningCondition(model_id="m", threshold=0.7)
        assert condition.to_wire() == {"ml": {"model_id": "m", "threshold": 0.7}}

    def test_description_mentions_model(self):
        assert "spam-detector" in str(MachineLearningCondition(model_id="spam-detector"))
