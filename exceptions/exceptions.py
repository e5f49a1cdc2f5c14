from typing import List, Tuple


class ErrorUserValidation(Exception):
    def __init__(self, errors: List[Tuple[str, str]]):
        self.errors = errors
        super().__init__("Validation error: " + "; ".join(message for _, message in errors))

    @property
    def messages(self) -> List[str]:
        return [message for _, message in self.errors]


class ErrorEmailAlreadyExists(Exception):
    pass


class ErrorUserNotFound(Exception):
    pass


class ErrorInvalidUserId(Exception):
    pass


class ErrorUserStore(Exception):
    pass
