APP_NAME = "Nosana Chat Relay"
APP_VERSION = "1.0.0"
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost",
	"http://127.0.0.1",
	"http://localhost:3000",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]

DEFAULT_SYSTEM_PROMPT = (
	"You are a helpful assistant. You work for Nosana, a decentralized computing network, "
	"and your job is to informatively answer questions about Nosana. You will get questions "
	"accompanied with pages of context. Only use the context you are given when it is "
	"informative to answer the question. If you don't know the answer, be honest about it."
)
DEFAULT_TEMPERATURE = 1.0
DEFAULT_MODEL_ID = "gpt-3.5-turbo"
RESERVED_COMPLETION_TOKENS = 768
MAX_COMPLETION_TOKENS = 1000

DEFAULT_OPENAI_API_HOST = "https://api.openai.com"
CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
DEFAULT_UPSTREAM_TIMEOUT_S = 30.0

NOS_TOKEN_ADDRESS = "nosXBVoaCTtYdLvKY6Csb4AC8JCdQKKAaWYtx2ZMoo7"
PRICE_ENDPOINT = "https://public-api.birdeye.so/defi/price"
DEFAULT_PRICE_TIMEOUT_S = 5.0
PRICE_TRIGGER_PHRASES = (
	"nosana price",
	"price of nosana",
)
