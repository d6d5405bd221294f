"""
Choices offered by the configuration panel and accepted by the generator.
"""

GOALS = [
    {'value': 'get_more_comments', 'label': 'Get More Comments'},
    {'value': 'go_viral', 'label': 'Go Viral'},
    {'value': 'soft_sell', 'label': 'Soft Sell'},
    {'value': 'premium_tone', 'label': 'Premium Tone'},
    {'value': 'faith_motivation', 'label': 'Faith Motivation'},
    {'value': 'storytelling', 'label': 'Storytelling'},
]

PLATFORMS = [
    {'value': 'Instagram', 'label': 'Instagram'},
    {'value': 'TikTok', 'label': 'TikTok'},
    {'value': 'LinkedIn', 'label': 'LinkedIn'},
    {'value': 'WhatsApp Status', 'label': 'WhatsApp Status'},
]

AUDIENCES = [
    {'value': 'friends', 'label': 'Friends'},
    {'value': 'customers', 'label': 'Customers'},
    {'value': 'church', 'label': 'Church Community'},
    {'value': 'professional', 'label': 'Professional Network'},
    {'value': 'youth', 'label': 'Youth / Gen Z'},
]

LANGUAGES = [
    'English', 'Spanish', 'French', 'Portuguese', 'German', 'Italian', 'Chinese', 'Hindi', 'Arabic'
]

LENGTHS = [
    {'value': 'short', 'label': 'Short'},
    {'value': 'medium', 'label': 'Medium'},
    {'value': 'long', 'label': 'Long'},
]

EMOJIS = [
    {'value': 'none', 'label': '🚫'},
    {'value': 'low', 'label': '😐'},
    {'value': 'normal', 'label': '🙂'},
    {'value': 'high', 'label': '🤩'},
]

DEFAULT_SETTINGS = {
    'goal': 'get_more_comments',
    'platform': 'Instagram',
    'audience': 'friends',
    'captionLength': 'short',
    'emojiLevel': 'normal',
}
