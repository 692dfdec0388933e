"""Promotion Voting package.

Anonymous promotion voting and appeals, organized by feature modules
(anonymizer, votes, stats, integrity, appeals) with Protocol repositories,
MySQL implementations and service layers holding the business rules.
"""
