"""Manager classes for different system components"""
