"""
Tests for the chat app.

Services and the membership guard are tested directly; the REST surface
through APIClient and the socket through channels' WebsocketCommunicator.

Usage:
    pytest app/chat/tests/
    pytest app/chat/tests/test_consumers.py -k typing
"""
