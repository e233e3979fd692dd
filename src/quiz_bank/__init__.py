"""quiz-bank: local question bank and quiz-progress tracker."""
