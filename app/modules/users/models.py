# Supabase table: user_profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

user_profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null, stored lower-case) - synced from auth.users
- full_name: text (nullable)
- role: text (not null, default: 'user') - values: user, admin
- is_premium: boolean (not null, default: false)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Note: Authentication data (password, tokens) is stored in auth.users table
managed by Supabase Auth. Role and premium flags live here and are only
writable through admin endpoints or app/scripts/grant_access.py.
"""
