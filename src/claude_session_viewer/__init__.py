"""Browse, search and soft-delete Claude Code session logs."""
