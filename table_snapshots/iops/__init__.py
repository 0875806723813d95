from .base import FileIO
from .base import InputFile
from .base import LocalInputFile
from .base import OutputFile

__all__ = ["FileIO", "InputFile", "LocalInputFile", "OutputFile"]
