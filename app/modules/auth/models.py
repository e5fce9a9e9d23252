# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User registration (auth.users table)
# - User login, refresh and session management
# - JWT token generation and validation
# - Password reset emails and password hashing

"""
Supabase Auth provides:
- auth.sign_up() - Register new users (metadata lands in raw_user_meta_data)
- auth.sign_in_with_password() - Authenticate users
- auth.refresh_session() - Exchange a refresh token for a new session
- auth.get_user() - Get current user from JWT token
- auth.reset_password_for_email() - Send a password recovery link
- auth.admin.update_user_by_id() - Set a new password (service role)
- auth.sign_out() - Logout users

A database trigger on auth.users inserts the matching row in public.profiles,
reading user_metadata keys: firstName, lastName, role, studentId, section.
"""
