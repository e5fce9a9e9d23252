# Supabase tables: teams, team_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

teams:
- id: uuid (primary key)
- assignment_id: uuid (foreign key to assignments.id, not null)
- name: text (not null)
- description: text (nullable)
- leader_id: uuid (foreign key to profiles.id, not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (assignment_id, name)

team_members:
- id: uuid (primary key)
- team_id: uuid (foreign key to teams.id, not null)
- user_id: uuid (foreign key to profiles.id, not null)
- role: text (not null, default: 'member') - values: leader, member
- joined_at: timestamp (default: now())
- unique constraint on (team_id, user_id)
"""
