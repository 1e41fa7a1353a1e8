"""Payload schemas for each canonical action type.

Field names follow the wire shape the model emits (``contents``, ``outputPath``);
common variants are accepted through validation aliases.
"""

from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class ActionPayload(BaseModel):
    """Base for payload schemas; unknown fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PathInput(ActionPayload):
    path: str = Field(..., min_length=1, description="Workspace-relative or absolute path")


class FileContentInput(PathInput):
    contents: str = Field(
        default="",
        validation_alias=AliasChoices("contents", "content"),
        description="Text to write or append",
    )


class CommandInput(ActionPayload):
    command: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("command", "cmd"),
        description="Shell command line; parts may be chained with &&",
    )
    cwd: Optional[str] = Field(None, description="Working directory (defaults to the workspace root)")

    @model_validator(mode="before")
    @classmethod
    def _fallback_to_cmd(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("command") and data.get("cmd"):
            data = {**data, "command": data["cmd"]}
        return data


class PortInput(ActionPayload):
    port: int = Field(..., gt=0, lt=65536, description="TCP port whose listeners are killed")


class UrlInput(ActionPayload):
    url: str = Field(..., min_length=1, description="URL to GET")


class NoInput(ActionPayload):
    pass


class MemoryInput(ActionPayload):
    operation: Literal["read", "write", "clear"] = Field(default="read")
    key: Optional[str] = None
    value: Any = None


class BackupInput(ActionPayload):
    label: Optional[str] = Field(None, description="Suffix appended to the backup folder name")


class ImageInput(ActionPayload):
    prompt: str = Field(..., min_length=1, description="Image description")
    output_path: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("outputPath", "output_path", "path"),
        description="Where to save the image (defaults to generated-images/)",
    )
