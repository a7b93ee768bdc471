"""Core application components.

This module provides the foundational components for the BuildLedger API:
- Database connection management via Prisma
- Application settings loaded from the environment
"""
