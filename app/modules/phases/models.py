# Supabase table: assignment_phases
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

assignment_phases:
- id: uuid (primary key)
- assignment_id: uuid (foreign key to assignments.id, not null)
- title: text (not null)
- description: text (nullable)
- phase_order: integer (not null) - 1-based position within the assignment
- start_date: timestamp (nullable)
- due_date: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
