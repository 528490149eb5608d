# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   post_service     — CRUD + search + pagination + cache for Post
#   comment_service  — comment moderation state machine
#   like_service     — idempotent like / unlike
#   user_service     — signup, login, email verification
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Access-policy checks run in the router layer
# (``blog_api.dependencies.require``) except where the decision needs the
# loaded resource (comment withdrawal checks ownership in the service).
