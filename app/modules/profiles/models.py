# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id on delete cascade)
- email: text (unique, not null) - synced from auth.users
- first_name: text (not null)
- last_name: text (not null)
- role: text (not null, default: 'student') - values: admin, teacher, student
- student_id: text (nullable, unique) - students only
- section: text (nullable) - class/section, students only
- avatar_url: text (nullable)
- bio: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Rows are inserted by the handle_new_user trigger on auth.users, which maps
raw_user_meta_data keys firstName, lastName, role, studentId, section.
"""
