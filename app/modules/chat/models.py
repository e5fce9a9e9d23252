# Supabase table: chat_messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Attachments live in the chat-attachments storage bucket under {team_id}/

"""
Expected Supabase table structure:

chat_messages:
- id: uuid (primary key)
- team_id: uuid (foreign key to teams.id, not null)
- sender_id: uuid (foreign key to profiles.id, not null)
- content: text (not null, may be empty when an attachment is present)
- attachment_url: text (nullable)
- attachment_name: text (nullable)
- created_at: timestamp (default: now())
- index on (team_id, created_at)
"""
