from ai.prompts.issue_writer import ISSUE_WRITER
from ai.prompts.title_writer import TITLE_REQUEST, TITLE_WRITER

__all__ = ["ISSUE_WRITER", "TITLE_WRITER", "TITLE_REQUEST"]
