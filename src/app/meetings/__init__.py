"""Meeting bots -- Recall.ai integration, schedules, and canned meeting data.

Provides the schemas, bot schedule repository and the RecallClient /
BotManager pair used by the recall and webhook endpoints.
"""
