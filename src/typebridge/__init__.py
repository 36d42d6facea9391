"""typebridge: TypeScript declarations from Prisma and Mongoose schemas."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("typebridge")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from typebridge.api import generate, verify, inspect, GenerationResult, VerificationResult, InspectionResult
from typebridge.codes import ErrorCode
from typebridge.errors import Issue
from typebridge.options import GenerationOptions, load_options

__all__ = [
    "__version__",
    "generate",
    "verify",
    "inspect",
    "GenerationResult",
    "VerificationResult",
    "InspectionResult",
    "GenerationOptions",
    "load_options",
    "ErrorCode",
    "Issue",
]
