"""
Hook pipeline exception classes.

These are raised inside the library and caught at the handler boundary,
where they become descriptive text or a fallback path. None of them is
allowed to reach the hosting inference server.
"""


class HookError(Exception):
    """Base hook pipeline error"""

    pass


class CommandFormatError(HookError):
    """Embedded command has the wrong shape"""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class PersistenceError(HookError):
    """Governance snapshot could not be read or written"""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class IntegrityError(HookError):
    """Governance rule set or memory kernel failed verification"""

    pass
