# Collection Names
COLLECTIONS = {
    'festivals': 'festivals',
    'users': 'users',
    'posts': 'posts',
    'discover_posts': 'discover_posts',
    'messages': 'messages',
    'chat_rooms': 'chat_rooms',
    'downloads': 'downloads',
}

# Collection Structure Documentation
COLLECTION_SCHEMAS = {
    'festivals': {
        'fields': ['name', 'description', 'imageUrl', 'date', 'time', 'startTime', 'endTime', 'categories', 'categoryAccessCodes', 'qrCodes', 'accessCode', 'stats', 'ownerId'],
        'required': ['name', 'ownerId'],
        'indexes': ['ownerId']
    },
    'users': {
        'fields': ['email', 'displayName', 'photoURL', 'username', 'followers', 'following', 'accessibleFestivals', 'accessibleCategories', 'isBusinessAccount'],
        'required': ['email'],
        'indexes': ['isBusinessAccount']
    },
    'posts': {
        'fields': ['text', 'mediaFiles', 'userId', 'createdAt', 'festivalId'],
        'required': ['mediaFiles', 'userId', 'festivalId'],
        'indexes': ['festivalId', 'createdAt']
    },
    'discover_posts': {
        'fields': ['text', 'userId', 'userDisplayName', 'userPhotoURL', 'mediaFiles', 'likes', 'comments', 'createdAt'],
        'required': ['userId'],
        'indexes': ['createdAt', 'userId']
    },
    'chat_rooms': {
        'fields': ['participants', 'lastMessage', 'lastMessageAt', 'createdBy', 'createdAt'],
        'required': ['participants', 'createdBy'],
        'indexes': ['participants', 'lastMessageAt']
    },
    'messages': {
        'fields': ['roomId', 'senderId', 'text', 'type', 'postId', 'mediaIndex', 'festivalId', 'categoryId', 'createdAt'],
        'required': ['roomId', 'senderId', 'type'],
        'indexes': ['roomId', 'createdAt']
    },
    'downloads': {
        'fields': ['postId', 'mediaType', 'mediaIndex', 'festivalId', 'categoryId', 'userId', 'url', 'downloadedAt'],
        'required': ['postId', 'mediaIndex', 'festivalId', 'userId'],
        'indexes': ['festivalId', 'postId', 'userId']
    },
}
