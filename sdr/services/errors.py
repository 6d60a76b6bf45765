class ServiceError(Exception):
    pass


class InvalidURLError(ServiceError):
    pass


class FetchFailedError(ServiceError):
    pass


class AudioUnavailableError(FetchFailedError):
    pass


class TranscriptionServiceError(ServiceError):
    pass


class RecipeParseError(ServiceError):
    pass


class NotSoundDesignError(ServiceError):
    pass


class PersistenceError(ServiceError):
    def __init__(self, operation: str, reason: str, code: str | None = None):
        super().__init__(f"Persistence error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason
        self.code = code


class TutorialNotFoundError(ServiceError):
    def __init__(self, tutorial_id: str):
        super().__init__(f"Tutorial not found: {tutorial_id}")
        self.tutorial_id = tutorial_id


class ConfigurationError(ServiceError):
    def __init__(self, errors: list[str]):
        super().__init__(f"Configuration errors: {', '.join(errors)}")
        self.errors = errors
