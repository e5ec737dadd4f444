from enum import Enum

class PublicationKind(str, Enum):
    JournalPaper = "journal_paper"
    ConferencePaper = "conference_paper"
    BookChapter = "book_chapter"

class UserLogAction(str, Enum):
    Create = "create"
    Update = "update"
    Delete = "delete"
