from library_system.storage.dbapi import Connection

TABLE_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS Authors (
        AuthorId TEXT PRIMARY KEY,
        Name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS Users (
        UserId TEXT PRIMARY KEY,
        Name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS LibraryItems (
        ItemId TEXT PRIMARY KEY,
        ItemType TEXT NOT NULL,
        Title TEXT NOT NULL,
        AuthorId TEXT NULL,
        ISBN TEXT NULL,
        PublicationYear INTEGER NULL,
        AvailabilityStatus INTEGER NOT NULL DEFAULT 0,
        FOREIGN KEY (AuthorId) REFERENCES Authors(AuthorId)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS LoanRecords (
        LoanRecordId TEXT PRIMARY KEY,
        ItemId TEXT NOT NULL,
        UserId TEXT NOT NULL,
        LoanDate TEXT NOT NULL,
        DueDate TEXT NOT NULL,
        ReturnDate TEXT NULL,
        FOREIGN KEY (ItemId) REFERENCES LibraryItems(ItemId),
        FOREIGN KEY (UserId) REFERENCES Users(UserId)
    )
    """,
)

INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_loan_records_item_id ON LoanRecords(ItemId)",
    "CREATE INDEX IF NOT EXISTS idx_loan_records_user_id ON LoanRecords(UserId)",
)


def create_tables(connection: Connection) -> None:
    """Creates the four tables (and loan lookup indexes) if they do not exist."""
    for statement in TABLE_STATEMENTS + INDEX_STATEMENTS:
        connection.execute(statement)
