# Supabase table: assignments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

assignments:
- id: uuid (primary key)
- title: text (not null)
- description: text (nullable)
- section: text (nullable) - when set, only students of that section see it
- created_by: uuid (foreign key to profiles.id, not null) - owning teacher
- status: text (not null, default: 'draft') - values: draft, published, closed
- min_team_size: integer (not null, default: 2, check >= 1)
- max_team_size: integer (not null, default: 4, check >= min_team_size)
- due_date: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

teams.assignment_id references assignments.id without cascade, so an
assignment with teams cannot be deleted (foreign key violation 23503).
"""
