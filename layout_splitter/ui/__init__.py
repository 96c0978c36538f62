"""Qt widgets for the section editor.

Import widgets from their modules directly; this package stays empty so
the pure layers can be imported without creating any widgets.
"""
