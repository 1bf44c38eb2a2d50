"""
Expert Finder - Microsoft Teams bot and web tab API.

Provides:
- Bot Framework activity routing (messages, task modules, messaging extension)
- Sign-in waterfall with profile view/edit backed by Microsoft Graph
- People search backed by SharePoint search
- Adaptive Cards UI (welcome, help, search, profile)
"""
