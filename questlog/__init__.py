"""
QuestLog: personal game-backlog tracker.

This package holds the board state model, debounced persistence, guest
account migration and the social layer. Persistence and auth live in a
hosted document store; the front end drives everything through
`questlog.client.create_client()`. `questlog.app` serves the
search proxy that keeps the metadata API key off the client.
"""
