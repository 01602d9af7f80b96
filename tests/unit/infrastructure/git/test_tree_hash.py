import asyncio
from pathlib import Path

from treegate.domain.value_objects import UNKNOWN_TREE_HASH
from treegate.infrastructure.git.tree_hash import GitTreeHashProvider, parse_submodule_status


async def git(cwd: Path, *args: str) -> str:
    proc = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise RuntimeError(f"Git failed: {stderr.decode()}")
    return stdout.decode().strip()


class TestParseSubmoduleStatus:
    def test_parses_initialized_submodules(self) -> None:
        output = "\n".join(
            [
                " 1111111111111111111111111111111111111111 libs/a (heads/main)",
                "+2222222222222222222222222222222222222222 libs/b",
                "-3333333333333333333333333333333333333333 libs/uninitialized",
            ]
        )

        assert parse_submodule_status(output) == ["libs/a", "libs/b"]

    def test_empty_output(self) -> None:
        assert parse_submodule_status("") == []


class TestGitTreeHashProvider:
    async def test_clean_tree_matches_head_tree(self, git_repo: Path) -> None:
        result = await GitTreeHashProvider(git_repo).compute()

        assert result.hash == await git(git_repo, "rev-parse", "HEAD^{tree}")
        assert result.submodule_hashes is None

    async def test_is_deterministic(self, git_repo: Path) -> None:
        (git_repo / "new.txt").write_text("x\n")
        provider = GitTreeHashProvider(git_repo)

        assert (await provider.compute()).hash == (await provider.compute()).hash

    async def test_untracked_files_change_the_hash(self, git_repo: Path) -> None:
        provider = GitTreeHashProvider(git_repo)
        before = await provider.compute()

        (git_repo / "untracked.txt").write_text("new\n")
        after = await provider.compute()

        assert after.hash != before.hash

    async def test_modifications_change_the_hash(self, git_repo: Path) -> None:
        provider = GitTreeHashProvider(git_repo)
        before = await provider.compute()

        (git_repo / "initial.txt").write_text("changed\n")

        assert (await provider.compute()).hash != before.hash

    async def test_ignored_files_do_not_change_the_hash(self, git_repo: Path) -> None:
        (git_repo / ".gitignore").write_text("*.log\n")
        provider = GitTreeHashProvider(git_repo)
        before = await provider.compute()

        (git_repo / "debug.log").write_text("noise\n")

        assert (await provider.compute()).hash == before.hash

    async def test_real_index_is_untouched(self, git_repo: Path) -> None:
        (git_repo / "untracked.txt").write_text("new\n")
        status_before = await git(git_repo, "status", "--porcelain")

        await GitTreeHashProvider(git_repo).compute()

        assert await git(git_repo, "status", "--porcelain") == status_before
        assert not list((git_repo / ".git").glob("treegate-temp-index-*"))

    async def test_same_content_same_hash_from_subdirectory(self, git_repo: Path) -> None:
        (git_repo / "sub").mkdir()
        (git_repo / "sub" / "file.txt").write_text("content\n")

        from_root = await GitTreeHashProvider(git_repo).compute()
        from_sub = await GitTreeHashProvider(git_repo / "sub").compute()

        assert from_root.hash == from_sub.hash

    async def test_outside_repository_is_unknown(self, tmp_path: Path) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()

        result = await GitTreeHashProvider(plain).compute()

        assert result.hash == UNKNOWN_TREE_HASH
        assert result.is_known is False

    async def test_submodule_hashes_are_reported(self, git_repo: Path, tmp_path: Path) -> None:
        library = tmp_path / "library"
        library.mkdir()
        await git(library, "init")
        await git(library, "config", "user.email", "test@test.com")
        await git(library, "config", "user.name", "Test User")
        (library / "lib.txt").write_text("lib\n")
        await git(library, "add", ".")
        await git(library, "commit", "-m", "lib")

        await git(
            git_repo,
            "-c",
            "protocol.file.allow=always",
            "submodule",
            "add",
            str(library),
            "vendor/library",
        )
        provider = GitTreeHashProvider(git_repo)
        before = await provider.compute()

        assert before.submodule_hashes is not None
        assert set(before.submodule_hashes) == {"vendor/library"}

        (git_repo / "vendor" / "library" / "lib.txt").write_text("patched\n")
        after = await provider.compute()

        assert after.submodule_hashes is not None
        assert after.submodule_hashes["vendor/library"] != before.submodule_hashes["vendor/library"]
