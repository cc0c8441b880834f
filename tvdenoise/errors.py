class TVDenoiseError(Exception):
    """Base class for every error raised by tvdenoise."""


class UnknownModelError(TVDenoiseError, ValueError):
    def __init__(self, model):
        self.model = model
        super().__init__(f'Unrecognized noise model "{model}"')


class InvalidParameterError(TVDenoiseError, ValueError):
    pass


class AllocationError(TVDenoiseError, MemoryError):
    pass


class ImageIOError(TVDenoiseError, OSError):
    pass


class SolverFailure(TVDenoiseError, RuntimeError):
    pass
