"""Agent personalities and response generators"""
