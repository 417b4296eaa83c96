"""Authentication core.

Learn: Three pieces, each usable without the web layer:
1. Password schemes + PasswordHasher → `#<scheme_id>#<blob>` stored hashes,
   with transparent migration to the default scheme
2. Token + TokenSigner → `b64u(ident).b64u(exp).signature` session tokens
3. CtxResolver → auth cookie → Ctx (or a classified failure), per request
"""
