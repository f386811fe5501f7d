# Models package - database models
from userhub.models.user import User
from userhub.models.token import RefreshToken
