from enum import Enum

from pydantic import BaseModel, ConfigDict


class Insertion(BaseModel):
    """One piece of text added to the original source."""

    model_config = ConfigDict(frozen=True)

    original_pos: int
    generated_pos: int
    length: int
    inserted: str
    total: int


class MappedPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    pos: int
    in_generated: bool = False


class KitFilesSettings(BaseModel):
    server_hooks_path: str = "src/hooks.server"
    client_hooks_path: str = "src/hooks.client"
    params_path: str = "src/params"


class FileKind(str, Enum):
    ROUTE = "route"
    SERVER_HOOKS = "server-hooks"
    CLIENT_HOOKS = "client-hooks"
    PARAMS = "params"


class TemplateNode(BaseModel):
    type: str
    start: int
    end: int
    name: str | None = None
    raw: str | None = None
    expression: "TemplateNode | None" = None
    attributes: list["TemplateNode"] = []
    value: list["TemplateNode"] = []
    children: list["TemplateNode"] = []
    content_start: int | None = None
    content_end: int | None = None
    tag_end: int | None = None
    self_closing: bool = False


TemplateNode.model_rebuild()  # necessary for recursive types
