"""Application layer: the cut-line editor, the editor state object, and the split session.

- `cut_line_editor`: Qt-free add/drag/remove state machine
- `state.editor_state`: QObject that ties geometry, sections and cut lines together
- `session`: network work on a thread pool, results delivered as Qt signals
"""
