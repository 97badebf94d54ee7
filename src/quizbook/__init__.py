"""Quiz practice over pasted multiple-choice text with a persistent error book."""
