"""Per-user preferences: bot settings, content automations, social connections."""
