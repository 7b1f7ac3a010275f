"""Tests for the dataset update job."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ygolookup.jobs.update_cards import main, run_update
from ygolookup.models.dataset import BanListCounts, RunStatistics
from ygolookup.models.failure import NetworkFailure


@pytest.fixture
def stats() -> RunStatistics:
    return RunStatistics(
        processed_files=4,
        image_count=3,
        card_count=2,
        ban_lists={"ocg": BanListCounts(forbidden=1)},
    )


class TestRunUpdate:
    async def test_publishes_into_data_dir(self, tmp_path: Path, stats: RunStatistics) -> None:
        """Test the publisher is built for the requested directory."""
        publisher = MagicMock()
        publisher.publish = AsyncMock(return_value=stats)

        with patch(
            "ygolookup.jobs.update_cards.DatasetPublisher", return_value=publisher
        ) as publisher_cls:
            result = await run_update(tmp_path)

        assert result is stats
        paths = publisher_cls.call_args.args[0]
        assert paths.root == tmp_path

    async def test_failure_propagates(self, tmp_path: Path) -> None:
        """Test update failures are logged and re-raised."""
        publisher = MagicMock()
        publisher.publish = AsyncMock(side_effect=NetworkFailure("cards.json", 3))

        with (
            patch("ygolookup.jobs.update_cards.DatasetPublisher", return_value=publisher),
            pytest.raises(NetworkFailure),
        ):
            await run_update(tmp_path)


class TestMain:
    def test_prints_summary(
        self, tmp_path: Path, stats: RunStatistics, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with (
            patch("sys.argv", ["ygolookup-update", "--data-dir", str(tmp_path)]),
            patch(
                "ygolookup.jobs.update_cards.run_update", new_callable=AsyncMock, return_value=stats
            ) as run,
        ):
            main()

        run.assert_awaited_once_with(tmp_path)
        assert capsys.readouterr().out.strip() == stats.summary()
