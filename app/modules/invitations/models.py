# Supabase table: team_invitations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

team_invitations:
- id: uuid (primary key)
- team_id: uuid (foreign key to teams.id, not null)
- inviter_id: uuid (foreign key to profiles.id, not null)
- invitee_id: uuid (foreign key to profiles.id, not null)
- status: text (not null, default: 'pending') - values: pending, accepted, declined, cancelled
- message: text (nullable)
- created_at: timestamp (default: now())
- responded_at: timestamp (nullable)
- partial unique index on (team_id, invitee_id) where status = 'pending'
"""
