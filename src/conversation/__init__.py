# src/conversation/__init__.py — v1
