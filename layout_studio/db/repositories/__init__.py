from layout_studio.db.repositories.layouts import (
    LayoutBlueprintsRepository,
    LayoutVersionsRepository,
    PagesRepository,
)

__all__ = ["LayoutBlueprintsRepository", "LayoutVersionsRepository", "PagesRepository"]
