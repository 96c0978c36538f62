"""Section-boundary editor and crop pipeline for layout splits.

Keep this module lightweight. Qt-heavy modules (`layout_splitter.app`,
`layout_splitter.ui`) are imported directly by callers that need them.
"""

__version__ = "0.1.0"
