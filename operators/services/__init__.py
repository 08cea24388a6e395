"""
Commission tier engine: policy, qualification, financial impact,
per-operator locking, audit and the transition service tying them together.
"""
