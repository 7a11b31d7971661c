class LaunchError(Exception):
    pass


class ConfigError(LaunchError):
    pass


class RpcError(LaunchError):
    """JSON-RPC transport or protocol failure."""

    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


class StateUnavailable(LaunchError):
    pass


class MetadataPublishError(LaunchError):
    pass


class AssemblyError(LaunchError):
    pass


class SubmissionFailure(LaunchError):
    pass


class ConfirmationError(LaunchError):
    pass
