import hashlib
import re

import yaml
from loguru import logger
from pydantic import ValidationError

from treegate.domain.entities import PruneResult, RunCacheNote
from treegate.infrastructure.git.git_notes import GitNotesAdapter, NoteWriteStatus
from treegate.infrastructure.utils.yaml_io import model_to_yaml

RUN_CACHE_PREFIX = "treegate/run"

# Commands containing any of these keep their exact spacing in the cache key
SHELL_METACHARACTERS = ('"', "'", "`", "\\", "|", ">", "<", "&", ";", "$")


def encode_run_cache_key(command: str, workdir: str) -> str:
    """Stable 16-hex-char key for (command, workdir), safe inside a ref name."""
    command = command.strip()
    workdir = workdir.strip()
    if not command:
        return ""
    if not any(char in command for char in SHELL_METACHARACTERS):
        command = re.sub(r"\s+", " ", command)
    return hashlib.sha256(f"{command}__{workdir}".encode()).hexdigest()[:16]


class RunCacheStore:
    """Per-command results cached under refs/notes/treegate/run/<tree>/<key>."""

    def __init__(self, notes: GitNotesAdapter) -> None:
        self.notes = notes

    @staticmethod
    def ref_for(tree_hash: str, cache_key: str) -> str:
        return f"{RUN_CACHE_PREFIX}/{tree_hash}/{cache_key}"

    async def get(self, tree_hash: str, command: str, workdir: str) -> RunCacheNote | None:
        cache_key = encode_run_cache_key(command, workdir)
        if not cache_key:
            return None
        content = await self.notes.read_note(self.ref_for(tree_hash, cache_key), tree_hash)
        if content is None:
            return None
        try:
            return RunCacheNote.model_validate(yaml.safe_load(content))
        except (yaml.YAMLError, ValidationError) as e:
            logger.warning("Ignoring corrupted run cache entry {}: {}", cache_key, e)
            return None

    async def put(self, entry: RunCacheNote) -> bool:
        cache_key = encode_run_cache_key(entry.command, entry.workdir)
        if not cache_key:
            return False
        status = await self.notes.add_note(
            self.ref_for(entry.tree_hash, cache_key),
            entry.tree_hash,
            model_to_yaml(entry),
            force=True,
        )
        return status is NoteWriteStatus.WRITTEN

    async def list_tree_hashes(self) -> list[str]:
        prefix = f"refs/notes/{RUN_CACHE_PREFIX}/"
        hashes: list[str] = []
        for ref in await self.notes.list_notes_refs(prefix):
            tree_hash = ref.removeprefix(prefix).split("/", 1)[0]
            if tree_hash and tree_hash not in hashes:
                hashes.append(tree_hash)
        return hashes

    async def prune_all(self, dry_run: bool = False) -> PruneResult:
        pruned_hashes: list[str] = []
        removed = 0
        for tree_hash in await self.list_tree_hashes():
            prefix = f"refs/notes/{RUN_CACHE_PREFIX}/{tree_hash}"
            if dry_run:
                removed += len(await self.notes.list_notes_refs(prefix))
            else:
                removed += await self.notes.remove_notes_refs(prefix)
            pruned_hashes.append(tree_hash)
        return PruneResult(
            notes_pruned=removed,
            runs_pruned=removed,
            notes_remaining=0,
            pruned_tree_hashes=pruned_hashes,
        )
