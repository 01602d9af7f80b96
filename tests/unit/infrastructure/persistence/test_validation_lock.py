import asyncio
from pathlib import Path

import pytest

from treegate.domain.errors import ValidationLockError
from treegate.infrastructure.persistence._paths import OutputPathBuilder
from treegate.infrastructure.persistence.validation_lock import validation_lock


class TestValidationLock:
    async def test_lock_file_lives_under_temp_root(
        self, paths: OutputPathBuilder, tmp_path: Path
    ) -> None:
        async with validation_lock(tmp_path, paths=paths) as lock_path:
            assert lock_path.parent == paths.root / "locks"
            assert lock_path.exists()

    async def test_second_holder_fails_without_wait(
        self, paths: OutputPathBuilder, tmp_path: Path
    ) -> None:
        async with validation_lock(tmp_path, paths=paths):
            with pytest.raises(ValidationLockError, match="already running"):
                async with validation_lock(tmp_path, paths=paths):
                    pass

    async def test_wait_blocks_until_released(
        self, paths: OutputPathBuilder, tmp_path: Path
    ) -> None:
        order: list[str] = []

        async def first() -> None:
            async with validation_lock(tmp_path, paths=paths):
                order.append("first-acquired")
                await asyncio.sleep(0.3)
                order.append("first-released")

        async def second() -> None:
            await asyncio.sleep(0.1)
            async with validation_lock(tmp_path, wait=True, paths=paths):
                order.append("second-acquired")

        await asyncio.gather(first(), second())

        assert order == ["first-acquired", "first-released", "second-acquired"]

    async def test_different_directories_do_not_contend(
        self, paths: OutputPathBuilder, tmp_path: Path
    ) -> None:
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()

        async with validation_lock(tmp_path / "a", paths=paths):
            async with validation_lock(tmp_path / "b", paths=paths):
                pass

    async def test_lock_is_released_on_error(
        self, paths: OutputPathBuilder, tmp_path: Path
    ) -> None:
        with pytest.raises(RuntimeError):
            async with validation_lock(tmp_path, paths=paths):
                raise RuntimeError("boom")

        async with validation_lock(tmp_path, paths=paths):
            pass
