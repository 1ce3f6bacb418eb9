"""claude-tracker — Claude Code sessions to Clockify time entries."""
