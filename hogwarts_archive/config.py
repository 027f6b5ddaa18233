import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # Output settings
    output_tag: str = os.getenv("ARCHIVE_OUTPUT_TAG", "user: ")
    output_mode: str = os.getenv("ARCHIVE_OUTPUT_MODE", "plain")

    # Registry settings
    first_student_id: int = int(os.getenv("ARCHIVE_FIRST_STUDENT_ID", "100000"))

    # Catalog file settings
    file_encoding: str = os.getenv("ARCHIVE_FILE_ENCODING", "utf-8")
    # Codec error handler for catalog files and command input
    file_errors: str = os.getenv("ARCHIVE_FILE_ERRORS", "replace")
    collection_header: str = "serialNumber,title,inventor,type"

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Hogwarts Archive")
    log_level: str = os.getenv("ARCHIVE_LOG_LEVEL", "WARNING").upper()
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")


settings = Settings()
