"""Notifications - email templates, delivery queue, daily digest"""
