"""
Persistence helpers behind the attendance services
"""
