"""Tests for LabelGenerator."""

import random
from datetime import datetime, UTC

import pytest
from linode_kitchen.domain.exceptions import NoUniqueLabelError, UserError
from linode_kitchen.domain.services.label_generator import (
    LabelGenerator,
    clamp_prefix,
    default_label_prefix,
    sanitize_prefix,
)


class FrontLoadedRandom(random.Random):
    """Shuffle that moves the given suffixes to the front, in order."""

    def __init__(self, first):
        super().__init__(0)
        self.first = list(first)

    def shuffle(self, x):
        rest = [v for v in x if v not in self.first]
        x[:] = self.first + rest


def _existing(labels):
    calls = []

    async def list_existing():
        calls.append(1)
        return set(labels)

    return list_existing, calls


class TestPrefixHelpers:
    def test_sanitize(self):
        assert sanitize_prefix("my job/with space") == "my_job_with_space"

    def test_default_prefix(self):
        assert default_label_prefix("ci run", "default-ubuntu") == "kitchen-ci_run-default-ubuntu"

    def test_clamp(self):
        assert clamp_prefix("abcdefghij", 8, 4) == "abcd"

    def test_clamp_without_room(self):
        with pytest.raises(ValueError):
            clamp_prefix("abc", 4, 4)


class TestGenerate:
    @pytest.mark.asyncio
    async def test_skips_labels_in_use(self):
        generator = LabelGenerator(FrontLoadedRandom([500, 501, 502]))
        list_existing, calls = _existing({"web_500", "web_501"})

        label = await generator.generate("web", list_existing)

        assert label == "web_502"
        # the listing is re-read for every candidate
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_label_shape_and_length(self):
        generator = LabelGenerator(random.Random(7), max_length=20)
        list_existing, _ = _existing(set())

        label = await generator.generate("x" * 40, list_existing)

        assert len(label) == 20
        prefix, suffix = label.rsplit("_", 1)
        assert prefix == "x" * 16
        assert len(suffix) == 3 and suffix.isdigit()

    @pytest.mark.asyncio
    async def test_seeded_rng_is_reproducible(self):
        list_existing, _ = _existing(set())
        first = await LabelGenerator(random.Random(42)).generate("p", list_existing)
        second = await LabelGenerator(random.Random(42)).generate("p", list_existing)
        assert first == second

    @pytest.mark.asyncio
    async def test_exhaustion_raises_and_logs(self, caplog):
        taken = {f"full_{n:03d}" for n in range(1000)}
        list_existing, calls = _existing(taken)
        generator = LabelGenerator(random.Random(3))

        with pytest.raises(NoUniqueLabelError) as excinfo:
            await generator.generate("full", list_existing)

        assert isinstance(excinfo.value, UserError)
        assert excinfo.value.prefix == "full"
        assert len(calls) == 1000
        assert "Unable to generate a unique label with prefix full." in caplog.text
        assert "Might need to cleanup your account." in caplog.text

    def test_candidates_cover_whole_space(self):
        candidates = LabelGenerator(random.Random(0)).candidates("p")
        assert len(set(candidates)) == 1000
        assert candidates != sorted(candidates)


class TestGenerateTimestamped:
    @pytest.mark.asyncio
    async def test_timestamp_label(self):
        list_existing, _ = _existing(set())
        now = datetime(2024, 3, 9, 14, 5, 7, tzinfo=UTC)

        label = await LabelGenerator().generate_timestamped("kitchen-a", list_existing, now)

        assert label == "kitchen-a-20240309140507"

    @pytest.mark.asyncio
    async def test_timestamp_collision(self):
        now = datetime(2024, 3, 9, 14, 5, 7, tzinfo=UTC)
        list_existing, _ = _existing({"kitchen-a-20240309140507"})

        with pytest.raises(NoUniqueLabelError):
            await LabelGenerator().generate_timestamped("kitchen-a", list_existing, now)
