"""
Data models for stitch documents.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


STATUSES = ("open", "closed", "superseded", "abandoned")
PROVENANCES = ("human", "agent", "mixed", "retroactive")
CONFIDENCES = ("low", "medium", "high")

DEFAULT_STITCH_BODY = """## Intent

[Describe the goal or purpose of this change]

## Constraints

- [List any constraints or requirements]

## Alternatives

- [Document alternative approaches considered]

## Notes

[Additional context or information]
"""


@dataclass(frozen=True)
class GitLink:
    """A link from a stitch to a commit or a commit range.

    kind is "commit" (sha set) or "range" (range set, e.g. "main..HEAD").
    """
    kind: str
    sha: Optional[str] = None
    range: Optional[str] = None

    @classmethod
    def commit(cls, sha: str) -> "GitLink":
        return cls(kind="commit", sha=sha)

    @classmethod
    def commit_range(cls, rng: str) -> "GitLink":
        return cls(kind="range", range=rng)

    def to_dict(self) -> dict:
        if self.kind == "commit":
            return {"kind": "commit", "sha": self.sha}
        return {"kind": "range", "range": self.range}


@dataclass(frozen=True)
class DiffFingerprint:
    """Hash of a diff, recorded before the commit exists."""
    algo: str                                  # sha256
    kind: str                                  # staged-diff, unified-diff
    value: str

    def to_dict(self) -> dict:
        return {"algo": self.algo, "kind": self.kind, "value": self.value}


@dataclass
class StitchRelations:
    parent: Optional[str] = None               # containment edge
    depends_on: list[str] = field(default_factory=list)


@dataclass
class StitchGit:
    links: list[GitLink] = field(default_factory=list)
    fingerprints: list[DiffFingerprint] = field(default_factory=list)


@dataclass
class Frontmatter:
    """TOML frontmatter of a stitch file."""
    id: str                                    # S-20250101-ab12
    title: str
    status: str                                # open, closed, superseded, abandoned
    created_at: str                            # ISO timestamp
    updated_at: str                            # ISO timestamp, rewritten on every mutation
    provenance: Optional[str] = None
    confidence: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    scope_paths: list[str] = field(default_factory=list)
    relations: StitchRelations = field(default_factory=StitchRelations)
    git: StitchGit = field(default_factory=StitchGit)

    @property
    def parent(self) -> Optional[str]:
        return self.relations.parent

    def has_linked_commits(self) -> bool:
        """True if any commit or range is linked. Fingerprints don't count."""
        return len(self.git.links) > 0

    def to_dict(self) -> dict:
        """Convert to a plain dict with stable key order, omitting empty fields."""
        data: dict = {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.provenance:
            data["provenance"] = self.provenance
        if self.confidence:
            data["confidence"] = self.confidence
        if self.tags:
            data["tags"] = list(self.tags)
        if self.scope_paths:
            data["scope"] = {"paths": list(self.scope_paths)}

        relations: dict = {}
        if self.relations.parent:
            relations["parent"] = self.relations.parent
        if self.relations.depends_on:
            relations["depends_on"] = list(self.relations.depends_on)
        if relations:
            data["relations"] = relations

        git: dict = {}
        if self.git.links:
            git["links"] = [link.to_dict() for link in self.git.links]
        if self.git.fingerprints:
            git["fingerprints"] = [fp.to_dict() for fp in self.git.fingerprints]
        if git:
            data["git"] = git

        return data


@dataclass
class StitchDoc:
    """A loaded stitch: frontmatter, markdown body and where it lives."""
    frontmatter: Frontmatter
    body: str
    file_path: Path

    @property
    def id(self) -> str:
        return self.frontmatter.id

    @property
    def title(self) -> str:
        return self.frontmatter.title

    @property
    def status(self) -> str:
        return self.frontmatter.status


@dataclass
class BlameLine:
    """One line of `stitch blame` output."""
    line: int
    sha: str
    stitch_ids: list[str]
    text: str


@dataclass
class StatusResult:
    current: Optional[str] = None
    lineage: list[str] = field(default_factory=list)
