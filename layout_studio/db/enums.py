from enum import Enum


class BlueprintStatusEnum(str, Enum):
    draft = "draft"
    published = "published"


class LayoutVersionStateEnum(str, Enum):
    draft = "draft"
    published = "published"
    archived = "archived"
