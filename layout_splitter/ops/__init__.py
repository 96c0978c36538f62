"""Pure operations behind the section editor.

Geometry, cut lines, crop requests, crop quality and gallery
reconciliation. Nothing in this package imports Qt; the editor state and
the window call into it.
"""
