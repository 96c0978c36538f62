"""QObject state holders bound by the editor window."""
