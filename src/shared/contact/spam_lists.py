"""Reference lists for the contact form abuse heuristics."""

# Disposable and throwaway mailbox providers, plus placeholder domains
SUSPICIOUS_DOMAINS = [
    # Popular temporary services
    "10minutemail.com", "10minutemail.net", "10minutemail.org",
    "guerrillamail.com", "guerrillamail.net", "guerrillamail.org",
    "mailinator.com", "mailinator.net", "mailinator.org",
    "throwaway.email", "temp-mail.org", "temp-mail.io",
    "yopmail.com", "yopmail.net", "yopmail.fr",
    "maildrop.cc", "emailondeck.com", "getnada.com",

    # Newer services
    "tempmail.plus", "minuteinbox.com", "mohmal.com",
    "sharklasers.com", "guerrillamailblock.com", "pokemail.net",
    "spam4.me", "mailnesia.com", "mailcatch.com",
    "mailnator.com", "email-fake.com", "fakemailgenerator.com",
    "disposablemail.com", "throwawaymailbox.com", "tempinbox.com",

    # High-rotation services
    "burnermail.io", "mailtemp.info", "tempmail.io",
    "inboxkitten.com", "tempm.com", "tempmailo.com",
    "mailtemp.co", "temp-mail.online", "20minutemail.com",
    "mailexpire.com", "tempmail24.com", "instantemailaddress.com",

    # Placeholder / fake domains
    "example.com", "test.com", "fake.com", "invalid.com",
    "dummy.com", "sample.com", "placeholder.com",

    # Frequent spam sources
    "mail.ru", "bk.ru", "list.ru", "inbox.ru",
    "gmx.com", "web.de", "live.com.mx",
]

SPAM_KEYWORDS = [
    # Money
    "viagra", "casino", "lottery", "winner", "congratulations",
    "bitcoin", "crypto", "investment", "loan", "debt",
    "money back", "risk free", "guarantee", "no obligation",
    "earn money", "make money", "quick money", "easy money",
    "free money", "100% free", "no cost", "no fee",

    # Urgency
    "act now", "urgent", "immediately", "expires today",
    "limited time", "hurry up", "dont wait", "last chance",
    "expires soon", "final notice", "time sensitive",
    "only today", "while supplies last", "limited offer",

    # Aggressive marketing
    "buy now", "order now", "click here", "visit now",
    "subscribe now", "join now", "sign up now",
    "special promotion", "exclusive offer", "incredible deal",
    "amazing offer", "unbelievable", "revolutionary",

    # Health
    "lose weight", "weight loss", "miracle cure", "anti aging",
    "no prescription", "cialis", "pharmacy",
    "medical breakthrough", "doctor approved", "clinical study",

    # Suspicious tech
    "hack", "hacking", "cracked", "pirated", "leaked",
    "exploit", "bypass", "cheat", "bot", "automated",

    # Spanish phrases
    "ganar dinero", "dinero facil", "sin costo", "gratis",
    "oferta especial", "oportunidad unica", "promocion",
    "compra ahora", "urgente", "limitado", "garantizado",

    # Filler / generated content
    "lorem ipsum", "sample text", "test message", "asdf",
    "qwerty", "123456", "password", "admin",
]

SPAM_PATTERNS = [
    r"(?i)\b\d{1,3}%\s+(free|off|discount)\b",  # "50% off"
    r"(?i)\$\d+\s*(million|billion|k)\b",
    r"(?i)\b(call|text)\s+\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b",  # phone number pitch
    r"\b[A-Z]{3,}\s+[A-Z]{3,}\b",  # shouting
    r"[!]{3,}|[?]{3,}",
    r"(?i)\b(SEO|PPC|ROI|CTR|CPC)\b",
    r"(?i)\b\w+\.(tk|ml|ga|cf|club|top|online|site)\b",
]

SUSPICIOUS_USER_AGENTS = [
    "curl", "wget", "python", "bot", "crawler", "spider",
    "scraper", "parser", "extractor", "harvester",
    "postman", "httpie", "insomnia",
]

BOT_PATTERNS = [
    r"(?i)bot",
    r"(?i)crawler",
    r"(?i)spider",
    r"(?i)scraper",
]
