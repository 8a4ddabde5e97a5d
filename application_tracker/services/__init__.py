"""
Services: repository, filtering and statistics.
"""
