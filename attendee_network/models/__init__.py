from .user import User, UserRole
from .event import Event, Registration, RegistrationStatus
from .match import Match
from .friendship import Friendship, FriendshipStatus
from .message import Message
from .post import Post, PostLike, Comment
