from vidtube.db.store import IndexSpec

USERS = "users"
VIDEOS = "videos"
COMMENTS = "comments"
TWEETS = "tweets"
LIKES = "likes"
SUBSCRIPTIONS = "subscriptions"
PLAYLISTS = "playlists"

INDEXES = (
    IndexSpec(USERS, ("username",), unique=True),
    IndexSpec(USERS, ("email",), unique=True),
    IndexSpec(VIDEOS, ("title", "description"), text=True),
    IndexSpec(VIDEOS, ("owner",)),
    IndexSpec(COMMENTS, ("video",)),
    IndexSpec(TWEETS, ("owner",)),
    # absent targets index as null, so one key covers all three like kinds
    IndexSpec(LIKES, ("likedBy", "video", "comment", "tweet"), unique=True),
    IndexSpec(SUBSCRIPTIONS, ("subscriber", "channel"), unique=True),
    IndexSpec(SUBSCRIPTIONS, ("channel",)),
    IndexSpec(PLAYLISTS, ("owner",)),
)
