"""
Error kinds raised by the service area workflow.

Every component fails fast and synchronously. Each error type inherits from
``ServiceAreaError`` and from the builtin the caller would naturally catch
(``ValueError`` for bad input, ``IOError`` for write failures), so code
written against the plain builtins keeps working.

Classes:
    ServiceAreaError: Base class carrying the failing stage
    FormatError: Unreadable, malformed, or absent input file
    MissingCompanionError: Shapefile bundle missing a required companion file
    SchemaError: Geometry type not accepted by the requested operation
    ProjectionError: Unresolvable CRS or undefined coordinate transform
    UnitError: Distance operation requested on an angular CRS
    WriteError: Output file could not be written
"""

from typing import Dict, Optional


class ServiceAreaError(Exception):
    """
    Base exception for all workflow errors.

    Attributes:
        message: Human-readable error description
        stage: Pipeline stage that raised ('load', 'reproject', 'buffer', ...)
    """

    default_stage = ''

    def __init__(self, message: str = '', stage: Optional[str] = None):
        self.message = message
        self.stage = stage or self.default_stage
        super().__init__(message)

    def to_error_dict(self) -> Dict[str, str]:
        """Return a structured payload suitable for metadata.json and logs."""
        return {
            'error': type(self).__name__,
            'stage': self.stage,
            'message': self.message,
        }


class FormatError(ServiceAreaError, ValueError):
    default_stage = 'load'


class SchemaError(ServiceAreaError, ValueError):
    default_stage = 'validate'


class MissingCompanionError(FormatError, SchemaError):
    """A multi-file shapefile bundle is missing one of its companion files."""

    def __init__(self, message: str = '', missing: Optional[list] = None, stage: Optional[str] = None):
        self.missing = list(missing or [])
        super().__init__(message, stage=stage)


class ProjectionError(ServiceAreaError, ValueError):
    default_stage = 'reproject'


class UnitError(ServiceAreaError, ValueError):
    default_stage = 'buffer'


class WriteError(ServiceAreaError, IOError):
    default_stage = 'write'
