"""
Programmatic interface to stitch.

Usage:
    from stitch.api import StitchClient

    with StitchClient() as client:
        doc = client.start("Add retry to uploads")
        client.link_commit("HEAD")
        preview = client.prepare_finish()
        client.execute_finish(preview)
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Optional

from stitch.git import get_repo_root
from stitch.lib.config import (
    StitchConfig,
    clear_current_stitch,
    get_current_stitch,
    get_editor,
    load_config,
    set_current_stitch,
)
from stitch.lib.errors import NoCurrentStitchError, StitchError
from stitch.store.documents import (
    create_stitch,
    get_lineage,
    get_stitch_file_path,
    initialize_stitch,
    is_initialized,
    list_stitches,
    load_stitch,
    require_initialized,
)
from stitch.store.models import BlameLine, DiffFingerprint, StatusResult, StitchDoc
from stitch.workflow import finish as finish_engine
from stitch.workflow.blame import stitch_blame
from stitch.workflow.finish import FinishOptions, FinishPreview, FinishResult
from stitch.workflow.link import add_commit_link, add_range_link, add_staged_diff_fingerprint

logger = logging.getLogger(__name__)


class StitchClient:
    """Entry point for library users. The CLI is a thin layer over this."""

    def __init__(self, repo_root: Optional[Path] = None):
        self._repo_root_override = Path(repo_root) if repo_root is not None else None
        self._repo_root: Optional[Path] = None
        self._config: Optional[StitchConfig] = None

    def __enter__(self) -> "StitchClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._repo_root = None
        self._config = None

    @property
    def repo_root(self) -> Path:
        if self._repo_root is None:
            if self._repo_root_override is not None:
                self._repo_root = self._repo_root_override
            else:
                self._repo_root = get_repo_root()
        return self._repo_root

    @property
    def config(self) -> StitchConfig:
        if self._config is None:
            self._config = load_config(self.repo_root)
        return self._config

    def _resolve_id(self, stitch_id: Optional[str]) -> str:
        if stitch_id:
            return stitch_id
        current = get_current_stitch(self.repo_root)
        if not current:
            raise NoCurrentStitchError()
        return current

    # Lifecycle of the store

    def init(self) -> None:
        initialize_stitch(self.repo_root)

    def is_initialized(self) -> bool:
        return is_initialized(self.repo_root)

    # Creating and navigating

    def start(self, title: str) -> StitchDoc:
        """Create a root stitch and make it current."""
        doc = create_stitch(self.repo_root, title)
        set_current_stitch(self.repo_root, doc.id)
        return doc

    def child(self, title: str) -> StitchDoc:
        """Create a child of the current stitch and make it current."""
        parent_id = self._resolve_id(None)
        doc = create_stitch(self.repo_root, title, parent_id=parent_id)
        set_current_stitch(self.repo_root, doc.id)
        return doc

    def switch(self, stitch_id: str) -> None:
        load_stitch(self.repo_root, stitch_id)
        set_current_stitch(self.repo_root, stitch_id)

    def status(self) -> StatusResult:
        require_initialized(self.repo_root)
        current = get_current_stitch(self.repo_root)
        if not current:
            return StatusResult()
        return StatusResult(current=current, lineage=get_lineage(self.repo_root, current))

    def list_stitches(self, status: Optional[str] = None) -> list[StitchDoc]:
        return list_stitches(self.repo_root, status=status)

    def get(self, stitch_id: str) -> StitchDoc:
        return load_stitch(self.repo_root, stitch_id)

    def open_in_editor(self, stitch_id: Optional[str] = None) -> None:
        """Open the stitch file in the configured editor and wait for it to exit."""
        stitch_id = self._resolve_id(stitch_id)
        load_stitch(self.repo_root, stitch_id)
        file_path = get_stitch_file_path(self.repo_root, stitch_id)

        cmd = shlex.split(get_editor(self.config)) + [str(file_path)]
        try:
            result = subprocess.run(cmd)
        except FileNotFoundError:
            raise StitchError(f"Editor not found: {cmd[0]}") from None
        if result.returncode != 0:
            raise StitchError(f"Editor exited with code {result.returncode}")

    # Git binding

    def link_commit(self, sha: str, stitch_id: Optional[str] = None) -> StitchDoc:
        doc = self.get(self._resolve_id(stitch_id))
        return add_commit_link(self.repo_root, doc, sha, self.config.git_timeout)

    def link_range(self, rng: str, stitch_id: Optional[str] = None) -> StitchDoc:
        doc = self.get(self._resolve_id(stitch_id))
        return add_range_link(self.repo_root, doc, rng)

    def link_staged_diff(self, stitch_id: Optional[str] = None) -> DiffFingerprint:
        doc = self.get(self._resolve_id(stitch_id))
        _, fingerprint = add_staged_diff_fingerprint(self.repo_root, doc, self.config.git_timeout)
        return fingerprint

    def blame(self, path: str) -> list[BlameLine]:
        return stitch_blame(self.repo_root, path, self.config.git_timeout)

    # Finishing

    def prepare_finish(
        self,
        stitch_id: Optional[str] = None,
        options: Optional[FinishOptions] = None,
    ) -> FinishPreview:
        options = options or FinishOptions(status=self.config.default_status)
        return finish_engine.prepare_finish(self.repo_root, self._resolve_id(stitch_id), options)

    def execute_finish(
        self,
        preview: FinishPreview,
        options: Optional[FinishOptions] = None,
    ) -> FinishResult:
        """Apply a prepared finish and clear the current pointer if it was finished."""
        result = finish_engine.execute_finish(preview, options)

        current = get_current_stitch(self.repo_root)
        if current and current in finish_engine.finished_ids(result):
            clear_current_stitch(self.repo_root)
            logger.info(f"Cleared current stitch {current} after finish")

        return result
