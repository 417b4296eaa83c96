"""Request-scoped authentication context.

Learn: Ctx is what handlers and services receive once a request has been
authenticated. It only carries the user id. The root ctx (user id 0) is
for internal lookups, e.g. resolving a token owner before anyone is
authenticated, and can never be produced from a request.
"""

from dataclasses import dataclass

ROOT_USER_ID = 0


class CtxCreateError(Exception):
    """Raised when a Ctx cannot be built for the given user id."""


@dataclass(frozen=True)
class Ctx:
    user_id: int

    @classmethod
    def root_ctx(cls) -> "Ctx":
        return cls(user_id=ROOT_USER_ID)

    @classmethod
    def new(cls, user_id: int) -> "Ctx":
        if user_id == ROOT_USER_ID:
            raise CtxCreateError("cannot create a root ctx from a request")
        return cls(user_id=user_id)
