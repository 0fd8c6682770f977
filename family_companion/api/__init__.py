"""API endpoints and WebSocket handlers"""
