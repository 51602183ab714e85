"""
End-to-end tests: the supervisor against real agent processes.
"""
