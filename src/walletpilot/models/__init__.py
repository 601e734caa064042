"""Shared data models: onboarding states and step outcomes."""
