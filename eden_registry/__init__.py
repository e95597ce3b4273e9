"""
Eden Registry client - resilient async access to the Eden Genesis Registry.
"""
