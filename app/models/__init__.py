from app.models.user import User
from app.models.stall import MenuItem, Stall, StallTokenCounter
from app.models.token import Token, TokenStatus
