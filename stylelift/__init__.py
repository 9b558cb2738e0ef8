"""Styled-components CSS → static style model lowering engine."""

from .adapter import ResolutionAdapter, TokenTableAdapter  # noqa: F401
from .api import (  # noqa: F401
    FileResult,
    lower_component,
    lower_file,
    load_components,
    dump_models,
)
from .run_types import LoweringConfig  # noqa: F401
from .session import MalformedInputError, StyleWarning  # noqa: F401
