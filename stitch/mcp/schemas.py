"""Input and output models for the MCP tools."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from stitch.store.models import BlameLine, StitchDoc
from stitch.workflow.finish import FinishResult

TerminalStatus = Literal["closed", "superseded", "abandoned"]
Status = Literal["open", "closed", "superseded", "abandoned"]


class RepoInput(BaseModel):
    repo_root: str = Field(description="Absolute path to the git repository root")


class StitchCreateInput(RepoInput):
    title: str = Field(min_length=1, description="Title for the new stitch")
    parent: Optional[str] = Field(default=None, description="Parent stitch ID for hierarchy")
    depends_on: list[str] = Field(default_factory=list, description="Stitch IDs this depends on")


class StitchGetInput(RepoInput):
    stitch_id: str = Field(description="The stitch ID to retrieve")


class StitchListInput(RepoInput):
    status: Optional[Status] = Field(default=None, description="Filter by status")
    tag: Optional[str] = Field(default=None, description="Filter by tag")


class StitchUpdateFrontmatterInput(RepoInput):
    stitch_id: str = Field(description="The stitch ID to update")
    patch: dict[str, Any] = Field(description="Partial frontmatter fields to update")


class StitchUpdateBodyInput(RepoInput):
    stitch_id: str = Field(description="The stitch ID to update")
    body_markdown: str = Field(description="The new markdown body content")


class StitchLinkCommitInput(RepoInput):
    stitch_id: str = Field(description="The stitch ID to link to")
    sha: str = Field(description="Git commit SHA or ref to link")


class StitchLinkRangeInput(RepoInput):
    stitch_id: str = Field(description="The stitch ID to link to")
    range: str = Field(description="Git commit range (e.g., origin/main..HEAD)")


class StitchLinkStagedDiffInput(RepoInput):
    stitch_id: str = Field(description="The stitch ID to link to")


class StitchBlameInput(RepoInput):
    path: str = Field(description="File path to blame (relative to repo root)")
    line_start: Optional[int] = Field(default=None, gt=0, description="Start line (1-indexed)")
    line_end: Optional[int] = Field(default=None, gt=0, description="End line (1-indexed, inclusive)")


class StitchFinishInput(RepoInput):
    stitch_id: Optional[str] = Field(default=None, description="Stitch ID to finish (defaults to current)")
    status: Optional[TerminalStatus] = Field(default=None, description="Target status (default: closed)")
    superseded_by: Optional[str] = Field(default=None, description="Superseding stitch ID (requires status=superseded)")
    force: bool = Field(default=False, description="Override auto-abandoned detection")
    skip_confirmation: bool = Field(default=True, description="Skip cascade confirmation")


class StitchDocOutput(BaseModel):
    stitch_id: str
    file_path: str
    frontmatter: dict[str, Any]


class StitchGetOutput(StitchDocOutput):
    body: str


class StitchListSummary(BaseModel):
    stitch_id: str
    title: str
    status: str
    updated_at: str
    tags: list[str] = []
    file_path: str


class StitchFrontmatterOutput(BaseModel):
    frontmatter: dict[str, Any]


class OkOutput(BaseModel):
    ok: bool = True


class FingerprintOutput(BaseModel):
    algo: str
    kind: str
    value: str


class StitchLinkStagedDiffOutput(BaseModel):
    fingerprint: FingerprintOutput


class BlameLineOutput(BaseModel):
    line: int
    sha: str
    stitch_ids: list[str]
    text: str


class StitchBlameOutput(BaseModel):
    path: str
    lines: list[BlameLineOutput]


class FinishedStitchOutput(BaseModel):
    id: str
    title: str
    previous_status: str
    new_status: str


class StitchFinishOutput(BaseModel):
    finished_stitches: list[FinishedStitchOutput]
    warnings: list[str]
    final_status: str
    auto_detected_status: bool


def doc_to_output(doc: StitchDoc) -> StitchDocOutput:
    return StitchDocOutput(
        stitch_id=doc.id,
        file_path=str(doc.file_path),
        frontmatter=doc.frontmatter.to_dict(),
    )


def doc_to_get_output(doc: StitchDoc) -> StitchGetOutput:
    return StitchGetOutput(
        stitch_id=doc.id,
        file_path=str(doc.file_path),
        frontmatter=doc.frontmatter.to_dict(),
        body=doc.body,
    )


def doc_to_list_summary(doc: StitchDoc) -> StitchListSummary:
    return StitchListSummary(
        stitch_id=doc.id,
        title=doc.title,
        status=doc.status,
        updated_at=doc.frontmatter.updated_at,
        tags=list(doc.frontmatter.tags),
        file_path=str(doc.file_path),
    )


def blame_to_output(path: str, lines: list[BlameLine]) -> StitchBlameOutput:
    return StitchBlameOutput(
        path=path,
        lines=[
            BlameLineOutput(line=bl.line, sha=bl.sha, stitch_ids=list(bl.stitch_ids), text=bl.text)
            for bl in lines
        ],
    )


def finish_to_output(result: FinishResult) -> StitchFinishOutput:
    return StitchFinishOutput(
        finished_stitches=[
            FinishedStitchOutput(
                id=item.id,
                title=item.title,
                previous_status=item.previous_status,
                new_status=item.new_status,
            )
            for item in result.finished
        ],
        warnings=list(result.warnings),
        final_status=result.final_status,
        auto_detected_status=result.auto_detected_status,
    )
