"""
Adapters — the boundary to external executables.

    shell       run a program, capture output, enforce a timeout
    postgres    argv builders for the PostgreSQL utilities
"""
