"""
Boogie On & On API
Backend of the department community: job postings, boards, student
profiles and the senior project archive.

Architecture:
- MySQL: all structured data (users, postings, boards, projects)
- S3: images and project design files (only keys live in MySQL)
- SMTP: verification codes and application notices
"""

__version__ = "1.0.0"
