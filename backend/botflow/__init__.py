"""
botflow — visual command builder for chat-bot workflows.

Packages:
    workflow/ — graph model, connection manager, validation, templates
    config/   — environment-backed settings
"""
