"""Database models and schemas"""
