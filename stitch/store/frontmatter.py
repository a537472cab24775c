"""
Stitch file format: TOML frontmatter between +++ lines, then a markdown body.

    +++
    id = "S-20250101-ab12"
    title = "Add retry"
    ...
    +++

    ## Intent
    ...
"""

import tomllib
from dataclasses import replace
from datetime import datetime, timezone

import tomli_w

from stitch.lib.errors import ValidationError
from stitch.lib.validate import validate
from stitch.store.models import (
    DiffFingerprint,
    Frontmatter,
    GitLink,
    StitchGit,
    StitchRelations,
)

FRONTMATTER_DELIMITER = "+++"


def now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def update_timestamp(frontmatter: Frontmatter) -> Frontmatter:
    """Return a copy with updated_at set to now.

    updated_at never moves backwards: if the stored value is later than the
    local clock, it is kept.
    """
    new_value = now_iso()
    previous = _parse_timestamp(frontmatter.updated_at)
    current = _parse_timestamp(new_value)
    if previous is not None and current is not None and previous > current:
        new_value = frontmatter.updated_at
    return replace(frontmatter, updated_at=new_value)


def parse_stitch_file(content: str) -> tuple[Frontmatter, str]:
    """Parse stitch file content into (frontmatter, body).

    Raises:
        ValidationError: On missing delimiters, invalid TOML, or schema violations
    """
    lines = content.split("\n")

    if not lines or lines[0].rstrip("\r") != FRONTMATTER_DELIMITER:
        raise ValidationError("Invalid stitch file: missing frontmatter start")

    end_index = -1
    for i in range(1, len(lines)):
        if lines[i].rstrip("\r") == FRONTMATTER_DELIMITER:
            end_index = i
            break

    if end_index == -1:
        raise ValidationError("Invalid stitch file: missing frontmatter end")

    toml_text = "\n".join(lines[1:end_index])
    body = "\n".join(lines[end_index + 1:]).strip()

    try:
        data = tomllib.loads(toml_text)
    except tomllib.TOMLDecodeError as e:
        raise ValidationError(f"Invalid TOML frontmatter: {e}") from None

    return frontmatter_from_dict(data), body


def frontmatter_from_dict(data: dict) -> Frontmatter:
    """Build Frontmatter from parsed TOML, validating against the schema."""
    validate(data, "frontmatter")

    relations = data.get("relations") or {}
    git = data.get("git") or {}
    scope = data.get("scope") or {}

    return Frontmatter(
        id=data["id"],
        title=data["title"],
        status=data["status"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
        provenance=data.get("provenance"),
        confidence=data.get("confidence"),
        tags=list(data.get("tags", [])),
        scope_paths=list(scope.get("paths", [])),
        relations=StitchRelations(
            parent=relations.get("parent"),
            depends_on=list(relations.get("depends_on", [])),
        ),
        git=StitchGit(
            links=[_parse_git_link(link) for link in git.get("links", [])],
            fingerprints=[_parse_fingerprint(fp) for fp in git.get("fingerprints", [])],
        ),
    )


def _parse_git_link(obj: dict) -> GitLink:
    if obj.get("kind") == "commit" and isinstance(obj.get("sha"), str):
        return GitLink.commit(obj["sha"])
    if obj.get("kind") == "range" and isinstance(obj.get("range"), str):
        return GitLink.commit_range(obj["range"])
    raise ValidationError(f"Invalid git link: {obj}")


def _parse_fingerprint(obj: dict) -> DiffFingerprint:
    if (
        obj.get("algo") == "sha256"
        and obj.get("kind") in ("staged-diff", "unified-diff")
        and isinstance(obj.get("value"), str)
    ):
        return DiffFingerprint(algo=obj["algo"], kind=obj["kind"], value=obj["value"])
    raise ValidationError(f"Invalid fingerprint: {obj}")


def serialize_stitch_file(frontmatter: Frontmatter, body: str) -> str:
    """Serialize frontmatter and body to stitch file content."""
    data = frontmatter.to_dict()
    validate(data, "frontmatter")
    toml_text = tomli_w.dumps(data)
    return f"{FRONTMATTER_DELIMITER}\n{toml_text}{FRONTMATTER_DELIMITER}\n\n{body}\n"
