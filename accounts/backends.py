# accounts/backends.py
from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q


class UsernameOrEmailBackend(ModelBackend):
    """
    Sign in with a username or an email address (case-insensitive).
    An exact username match wins over another account's email.
    """
    def authenticate(self, request, username=None, password=None, **kwargs):
        if username is None or password is None:
            return None
        User = get_user_model()
        identifier = username.strip()

        candidates = list(User.objects.filter(Q(username__iexact=identifier) | Q(email__iexact=identifier))[:2])
        if not candidates:
            # Same hashing cost as a wrong password.
            User().set_password(password)
            return None
        candidates.sort(key=lambda u: u.username.lower() != identifier.lower())
        user = candidates[0]

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
