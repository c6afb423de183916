"""
Static tables for job posting term extraction.

All tables are immutable and built once at import time, so they can be shared
freely between concurrent callers.

KNOWN_PHRASES is matched in declaration order and the first match masks its
characters from every later pass. Longer or higher-priority phrases must be
declared before any shorter phrase they contain.
"""

# =============================================================================
# NORMALIZATION
# =============================================================================

# Characters replaced by a single space before tokenization
PUNCTUATION = ".,;:!?()[]{}/\\-_+=*&%$#@"

_PUNCTUATION_TABLE = str.maketrans({char: " " for char in PUNCTUATION})

# Filler used to mask matched phrases. Text is lowercased before masking,
# so an uppercase sentinel can never occur in normalized input.
MASK_CHAR = "X"

# Tokens must be longer than this to count as a bigram member or a unigram
MIN_TOKEN_LENGTH = 2


def normalize_text(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    return " ".join(text.lower().translate(_PUNCTUATION_TABLE).split())


# =============================================================================
# STOP-WORDS
# =============================================================================

STOPWORDS = frozenset(
    {
        "a", "about", "above", "after", "again", "against", "ain", "all", "am",
        "an", "and", "any", "are", "aren", "as", "at", "be", "because", "been",
        "before", "being", "below", "between", "both", "but", "by", "can",
        "couldn", "could", "did", "didn", "do", "does", "doesn", "doing", "don",
        "down", "during", "each", "etc", "few", "for", "from", "further", "had",
        "hadn", "has", "hasn", "have", "haven", "having", "he", "her", "here",
        "hers", "herself", "him", "himself", "his", "how", "i", "if", "in",
        "into", "is", "isn", "it", "its", "itself", "just", "ll", "ma", "may",
        "me", "might", "mightn", "more", "most", "must", "mustn", "my",
        "myself", "needn", "no", "nor", "not", "now", "of", "off", "on",
        "once", "only", "or", "other", "our", "ours", "ourselves", "out",
        "over", "own", "re", "same", "shall", "shan", "she", "should",
        "shouldn", "so", "some", "such", "than", "that", "the", "their",
        "theirs", "them", "themselves", "then", "there", "these", "they",
        "this", "those", "through", "to", "too", "under", "until", "up", "us",
        "very", "was", "wasn", "we", "were", "weren", "what", "when", "where",
        "which", "while", "who", "whom", "why", "will", "with", "won", "would",
        "wouldn", "you", "your", "yours", "yourself", "yourselves",
    }
)


# =============================================================================
# KNOWN PHRASES
# =============================================================================

KNOWN_PHRASES = (
    # Job titles
    "software engineer",
    "backend engineer",
    "frontend engineer",
    "full stack engineer",
    "software developer",
    "web developer",
    "devops engineer",
    "data engineer",
    "system administrator",
    "database administrator",
    "cloud architect",
    "solutions architect",
    "product manager",
    "scrum master",
    "technical lead",
    "engineering manager",
    # Technologies and frameworks
    "restful api",
    "restful apis",
    "microservices architecture",
    "service oriented architecture",
    "continuous integration",
    "continuous deployment",
    "ci/cd pipeline",
    "git workflow",
    "test driven development",
    "agile methodology",
    "scrum methodology",
    "kanban methodology",
    # Skills and concepts
    "cloud infrastructure",
    "distributed systems",
    "system design",
    "database design",
    "api design",
    "object oriented programming",
    "functional programming",
    "version control",
    "data structures",
    "design patterns",
    "unit testing",
    "integration testing",
    # Cloud platforms and tools
    "aws cloud",
    "microsoft azure",
    "google cloud",
    "cloud computing",
    "amazon web services",
    "aws lambda",
    "aws ec2",
    "aws s3",
    "docker containers",
    "kubernetes orchestration",
    "terraform",
    "infrastructure as code",
    # Programming languages with context
    "golang development",
    "python programming",
    "javascript framework",
    "typescript development",
    "java enterprise",
    "c++ programming",
    "react development",
    "node.js development",
    # Databases
    "postgresql database",
    "mysql database",
    "mongodb database",
    "redis cache",
    "elasticsearch",
    "sqlite database",
    "dynamodb",
    "database optimization",
    # Machine learning and data
    "machine learning",
    "data analysis",
    "data visualization",
    "big data",
    "natural language processing",
    "computer vision",
    "predictive modeling",
    "neural networks",
)
