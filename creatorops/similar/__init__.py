# Similar-channel matching; SimilarChannelFinder is in .matcher
from .models import CandidateChannel, SimilarityResult, SimilarRunResult
from .terms import analyze_titles, similarity_percent, tokenize, top_terms
