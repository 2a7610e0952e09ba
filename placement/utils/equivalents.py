"""
Header spellings accepted for each roster field.

Matching is exact: a column is only recognised when its header equals one of
the listed spellings. Earlier spellings win when a sheet carries several.
"""

ROSTER_COLUMNS = {
    "roll_number": ["roll_number", "Roll Number", "ROLL NUMBER"],
    "name": ["name", "Name", "NAME"],
    "email": ["email", "Email", "EMAIL"],
    "phone": ["phone", "Phone", "PHONE"],
}

REQUIRED_ROSTER_FIELDS = ("roll_number", "name")
