"""
Change-token handling.

The remote API accepts one mutation per change token and one live token
per scope. ChangeTokenRetryer owns the acquire/mutate/retry loop that
every create, update and delete runs through.
"""
