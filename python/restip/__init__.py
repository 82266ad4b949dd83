"""Messaging API for the host learning-management system."""
