"""Realtime infrastructure (Socket.IO, presence, broadcast, private messaging).

Every live feature (online list, feed updates, likes, private chat) shares the
one Socket.IO server defined in ``social_feed.realtime.socketio``.
"""
