# services/errors.py


class StakePoolError(Exception):
    """Base class for every error raised by the pool engine"""


class OperatorNotFound(StakePoolError):
    def __init__(self, name: str):
        super().__init__(f"Operator {name!r} not found")
        self.name = name


class OperatorNotFoundAtIndex(StakePoolError):
    def __init__(self, index: int):
        super().__init__(f"No operator registered at index {index}")
        self.index = index


class InvalidArgument(StakePoolError):
    pass


class Unauthorized(StakePoolError):
    def __init__(self, caller: str):
        super().__init__(f"{caller!r} is not allowed to perform this action")
        self.caller = caller
