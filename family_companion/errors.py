# family_companion/errors.py


class CompanionError(Exception):
    """Base class for errors raised by the companion services"""


class NotFoundError(CompanionError):
    """A requested record does not exist"""

    def __init__(self, kind: str, key):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id):
        super().__init__("User", user_id)


class UnknownAgentError(CompanionError):
    """Agent id is neither 'grace' nor 'alex'"""

    def __init__(self, agent_id):
        self.agent_id = agent_id
        super().__init__(f"Unknown agent: {agent_id}")
