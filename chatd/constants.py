# chatd wire constants (command keywords and reply literals)

# Command keywords
CMD_REGISTER = "reg"
CMD_LOGIN = "login"
CMD_TEXT = "text"
CMD_QUIT = "quit"

# Option flags
OPT_USER = "-u"
OPT_PASSWORD = "-p"

# Replies. Clients match on these strings; keep them byte-identical.
R_REGISTERED = "Registration successful"
R_REGISTER_ERROR = "Registration error"
R_NO_SUCH_USER = "User does not exist"
R_WRONG_PASSWORD = "Wrong Password"
R_LOGGED_IN = "Login Successful"
R_LOGIN_FIRST = "Login first"
R_NOT_ONLINE = "User is not online"
R_UNKNOWN = "Unknown command"

# Relayed message prefix: "From <sender>: <content>"
RELAY_FORMAT = "From {sender}: {content}"

# Defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 1111
DEFAULT_WS_PATH = "/app"
DEFAULT_MAX_FRAME_BYTES = 64 * 1024
