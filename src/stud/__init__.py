"""stud - branch-per-ticket workflow CLI for git, Jira and GitHub/GitLab."""

__version__ = "0.4.0"
