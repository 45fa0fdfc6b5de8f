"""Pydantic models for the gamification engine"""
