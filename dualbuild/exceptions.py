class DualbuildError(Exception):
    pass


class ConfigurationError(DualbuildError):
    pass


class TagGenerationError(DualbuildError):
    pass


class EmulationSetupError(DualbuildError):
    pass


class CommandError(DualbuildError):
    returncode: int
    output: str

    def __init__(self, message: str, returncode: int, output: str = ''):
        super().__init__(message)
        self.returncode = returncode
        self.output = output
