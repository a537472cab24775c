"""
Bind stitches to git: commit links, range links and staged-diff fingerprints.

Links and fingerprints are deduplicated. Adding something already present
returns the stitch unchanged without rewriting the file.
"""

import logging
from dataclasses import replace
from pathlib import Path

from stitch.git import DEFAULT_TIMEOUT, commit_exists, get_staged_diff, hash_diff, resolve_ref
from stitch.lib.errors import ValidationError
from stitch.store.documents import save_stitch
from stitch.store.models import DiffFingerprint, GitLink, StitchDoc

logger = logging.getLogger(__name__)


def add_commit_link(
    repo_root: Path,
    doc: StitchDoc,
    sha: str,
    timeout: int = DEFAULT_TIMEOUT,
) -> StitchDoc:
    """Link a commit, stored by its full SHA.

    Raises:
        ValidationError: If the commit does not exist
        GitError: If the SHA cannot be resolved
    """
    if not commit_exists(sha, repo_root, timeout):
        raise ValidationError(f"Commit not found: {sha}")

    full_sha = resolve_ref(sha, repo_root, timeout)
    return _add_link(repo_root, doc, GitLink.commit(full_sha))


def add_range_link(repo_root: Path, doc: StitchDoc, rng: str) -> StitchDoc:
    """Link a commit range such as "main..HEAD". The range is stored verbatim."""
    if not rng.strip():
        raise ValidationError("Commit range must not be empty")
    return _add_link(repo_root, doc, GitLink.commit_range(rng.strip()))


def add_staged_diff_fingerprint(
    repo_root: Path,
    doc: StitchDoc,
    timeout: int = DEFAULT_TIMEOUT,
) -> tuple[StitchDoc, DiffFingerprint]:
    """Record a sha256 fingerprint of the currently staged diff.

    Raises:
        ValidationError: If nothing is staged
        GitError: If git diff fails
    """
    diff = get_staged_diff(repo_root, timeout)
    if not diff.strip():
        raise ValidationError("No staged changes to fingerprint")

    fingerprint = DiffFingerprint(algo="sha256", kind="staged-diff", value=hash_diff(diff))

    fingerprints = doc.frontmatter.git.fingerprints
    if fingerprint in fingerprints:
        logger.debug(f"[LINK] {doc.id}: fingerprint already recorded")
        return doc, fingerprint

    git = replace(doc.frontmatter.git, fingerprints=[*fingerprints, fingerprint])
    saved = save_stitch(repo_root, replace(doc, frontmatter=replace(doc.frontmatter, git=git)))
    logger.info(f"[LINK] {doc.id}: staged-diff {fingerprint.value[:12]}")
    return saved, fingerprint


def _add_link(repo_root: Path, doc: StitchDoc, link: GitLink) -> StitchDoc:
    links = doc.frontmatter.git.links
    if link in links:
        logger.debug(f"[LINK] {doc.id}: {link.kind} link already present")
        return doc

    git = replace(doc.frontmatter.git, links=[*links, link])
    saved = save_stitch(repo_root, replace(doc, frontmatter=replace(doc.frontmatter, git=git)))
    logger.info(f"[LINK] {doc.id}: {link.kind} {link.sha or link.range}")
    return saved
