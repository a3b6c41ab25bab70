"""Meeting bot management -- Recall.ai bot lifecycle and control.

Provides RecallClient for Recall.ai REST API interaction, payload mapping,
and BotManager for scheduling, status polling, transcripts and cancellation.
"""
