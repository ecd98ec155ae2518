"""Realtime call bridge.

Relays a Twilio Media Stream to a realtime AI backend and back:
Twilio WS -> CallBridge -> RealtimeSession -> backend WS, and the reverse for
model audio. Lead records captured by the backend's tool call are handed to
delivery collaborators by the CallBridge.
"""
