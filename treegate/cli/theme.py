"""CLI theme configuration - all colors in one place.

Modify these values to customize the terminal color scheme.
Colors use Rich markup syntax (e.g., "green", "bold red", "dim italic").
"""


class Theme:
    """Terminal color theme for treegate CLI."""

    # -------------------------------------------------------------------------
    # Status colors (for success/error/warning indicators)
    # -------------------------------------------------------------------------
    SUCCESS = "green"
    SUCCESS_BOLD = "bold green"
    ERROR = "red"
    ERROR_BOLD = "bold red"
    WARNING = "yellow"
    WARNING_BOLD = "bold yellow"
    INFO = "cyan"
    INFO_BOLD = "bold cyan"

    # -------------------------------------------------------------------------
    # Text styles
    # -------------------------------------------------------------------------
    HEADER = "bold"
    DIM = "grey62"
    DIM_ITALIC = "grey62 italic"

    # -------------------------------------------------------------------------
    # Validation progress
    # -------------------------------------------------------------------------
    PHASE = "bold magenta"
    STEP_RUNNING = "grey74"
    STEP_PASSED = "green"
    STEP_FAILED = "bold red"
    CACHED = "bold cyan"

    # -------------------------------------------------------------------------
    # Table columns
    # -------------------------------------------------------------------------
    TABLE_HASH = "cyan"
    TABLE_LABEL = "grey62"
    TABLE_VALUE = "bold"
    TABLE_SECONDARY = "grey62"


# Default theme instance - import this in other modules
theme = Theme()
