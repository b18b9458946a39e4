from sqlalchemy.orm import Session


class Repository:
    """Repositories stage changes with flush(); services own commit/rollback."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj
