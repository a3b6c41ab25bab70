"""Post and follow-up email generation plus the content approval queue."""
