class GlobalMessages:
    # Score submission messages
    SCORE_SAVED = "Score saved successfully."
    HIGHER_SCORE_PRESENT = "There is a higher score present for you."

    # Leaderboard messages
    NO_SCORES_FOUND = "No scores found."
    SCORES_RETRIEVED = "Scores retrieved successfully."
    PLAYER_NOT_FOUND = "No score recorded for this address."

    # Health messages
    API_RUNNING = "API is running"
    STORE_REACHABLE = "Score store connection successful."
    STORE_UNREACHABLE = "Score store connection failed."
