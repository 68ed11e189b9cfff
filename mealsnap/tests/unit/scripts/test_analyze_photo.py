"""
Tests for the analyze_photo command line script.
"""

from pathlib import Path

import pytest

from mealsnap.config import Settings
from mealsnap.scripts.analyze_photo import build_parser, run


class TestAnalyzePhotoScript:
    """Test exit codes that need no network access."""

    def test_parser(self) -> None:
        args = build_parser().parse_args(["meal.jpg", "--model", "gpt-4o-mini"])

        assert args.photo == Path("meal.jpg")
        assert args.model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_unreadable_photo(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        code = await run(tmp_path / "missing.jpg", Settings())

        assert code == 2
        assert "Cannot read" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_missing_api_key(
        self, tmp_path: Path, small_photo_bytes: bytes, capsys: pytest.CaptureFixture
    ) -> None:
        photo = tmp_path / "meal.png"
        photo.write_bytes(small_photo_bytes)

        code = await run(photo, Settings(openai_api_key=""))

        assert code == 1
        assert "Invalid API key" in capsys.readouterr().err
