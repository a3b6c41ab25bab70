"""Social network integrations: LinkedIn OAuth/publishing and token storage."""
