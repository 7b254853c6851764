"""
Roadmap Dependency Graph Engine
Blueprint registry.
"""
