"""
Core app: pieces shared by every portal app.

- TaskService: background work on the local, Celery or Lambda backend
- languages: the supported portal languages and their locale codes
- i18n_lint: the hard-coded UI text scanner behind find_hardcoded_text
"""
