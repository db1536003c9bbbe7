"""
Train backend - group membership and follow relationships.
"""
