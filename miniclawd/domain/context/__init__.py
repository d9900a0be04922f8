# This module handles conversation context

# +---------------------+
# |      Memory         |   (Bounded, ordered, optionally persisted)
# |---------------------|
# | User inputs         |
# | Assistant actions   |
# | Tool observations   |
# +---------------------+
#         |
#         |  LOW_POWER: messages since the run began
#         |  HIGH_POWER: everything retained
#         v
# +------------------------------+
# |           Context            |   (Assembled per turn)
# |------------------------------|
# | System prompt (tools JSON)   |
# | History slice                |
# +------------------------------+
#         |
#         v
#   [Chat backend / parser / tool call]
