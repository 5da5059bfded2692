import unittest

from infrastructure.db.assignment_repository_postgres import PostgresAssignmentRepository


class RecordingCursor:
    """Answers the column lookup from a fixed list and records every statement."""

    def __init__(self, columns):
        self.columns = columns
        self.statements = []

    def execute(self, sql, params=None):
        self.statements.append(" ".join(sql.split()))

    def fetchall(self):
        return [{"column_name": c} for c in self.columns]


class LegacyColumnMigrationTests(unittest.TestCase):
    def test_column_lookup_is_limited_to_the_current_schema(self):
        cursor = RecordingCursor(["id", "league_at_return", "flex_league_at_return",
                                  "solo_lp_at_return", "flex_lp_at_return"])

        PostgresAssignmentRepository.migrate_legacy_columns(cursor)

        lookup = cursor.statements[0]
        self.assertIn("information_schema.columns", lookup)
        self.assertIn("table_schema = current_schema()", lookup)
        self.assertEqual(len(cursor.statements), 1)

    def test_legacy_names_are_renamed_and_missing_ones_added(self):
        cursor = RecordingCursor(["id", "return_league", "return_solo_lp"])

        PostgresAssignmentRepository.migrate_legacy_columns(cursor)

        self.assertEqual(
            cursor.statements[1:],
            [
                "ALTER TABLE account_assignments RENAME COLUMN return_league TO league_at_return",
                "ALTER TABLE account_assignments ADD COLUMN flex_league_at_return TEXT",
                "ALTER TABLE account_assignments RENAME COLUMN return_solo_lp TO solo_lp_at_return",
                "ALTER TABLE account_assignments ADD COLUMN flex_lp_at_return INTEGER",
            ],
        )


if __name__ == "__main__":
    unittest.main()
